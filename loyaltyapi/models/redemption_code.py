from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from loyaltyapi.models.base import BaseModel, generate_uuid
from loyaltyapi.utils.timezone_utils import utc_now


class RedemptionCode(BaseModel):
    """Single-use profile code a customer shows to staff to receive points."""

    __tablename__ = "qr_codes"
    __table_args__ = (
        Index("idx_qr_codes_user_id_used", "user_id", "used"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
