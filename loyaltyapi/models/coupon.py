from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from loyaltyapi.models.base import BaseModel, generate_uuid
from loyaltyapi.utils.timezone_utils import utc_now


class Coupon(BaseModel):
    """
    Reward definition owned by a business.

    Only ``is_active`` changes after creation; coupons are deactivated,
    never deleted, because redemptions keep referencing them.
    """

    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint("points_required > 0", name="ck_coupons_points_required"),
        Index("idx_coupons_business_id", "business_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    business_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("businesses.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    points_required: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class RedeemedCoupon(BaseModel):
    """
    A customer's claim on a coupon, paid for at redemption time.

    The id is what the customer shows as a QR code; staff verification flips
    ``verified`` false -> true exactly once.
    """

    __tablename__ = "redeemed_coupons"
    __table_args__ = (
        Index("idx_redeemed_coupons_user_id", "user_id"),
        Index("idx_redeemed_coupons_business_id", "business_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    business_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("businesses.id"), nullable=False
    )
    coupon_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("coupons.id"), nullable=False
    )
    points_spent: Mapped[int] = mapped_column(BigInteger, nullable=False)
    redeemed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    verified_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
