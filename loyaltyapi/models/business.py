import enum
from typing import Optional

from sqlalchemy import Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from loyaltyapi.models.base import BaseModel, generate_uuid


class LoyaltyType(str, enum.Enum):
    """How a business accumulates customer value"""

    POINTS = "POINTS"  # one running total per (user, business)
    COUPON_SPECIFIC = "COUPON_SPECIFIC"  # one stamp counter per coupon


class Business(BaseModel):
    __tablename__ = "businesses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    loyalty_type: Mapped[LoyaltyType] = mapped_column(
        Enum(LoyaltyType, name="loyalty_type"),
        default=LoyaltyType.POINTS,
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self):
        return f"<Business(id={self.id}, name={self.name}, loyalty_type={self.loyalty_type})>"
