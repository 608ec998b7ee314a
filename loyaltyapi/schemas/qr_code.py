from datetime import datetime

from pydantic import Field

from loyaltyapi.schemas.base import CamelModel


class QRCodeResponse(CamelModel):
    """Profile code the customer displays to staff"""

    id: str = Field(..., description="Code ID")
    data: str = Field(..., description="Payload to encode in the QR image")
    created_at: datetime = Field(..., description="Issue time")
