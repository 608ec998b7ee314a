from typing import Optional

from pydantic import Field

from loyaltyapi.models.business import LoyaltyType
from loyaltyapi.schemas.base import CamelModel


class BusinessItem(CamelModel):
    id: str = Field(..., description="Business ID")
    name: str
    loyalty_type: LoyaltyType
    description: Optional[str] = None
    image_url: Optional[str] = None
