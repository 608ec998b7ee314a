"""
Point balance tables.

Two balance shapes exist and never share a counter:

* ``user_loyalty_points`` - aggregate total per (user, business), used by
  ``LoyaltyType.POINTS`` businesses.
* ``coupon_specific_points`` - stamp count per (user, business, coupon), used
  by ``LoyaltyType.COUPON_SPECIFIC`` businesses.

Both are only mutated through single-statement upserts or conditional
updates (see ``PointsRepository``). ``loyalty_points`` keeps one immutable
row per award for customer history.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
)
from sqlalchemy.schema import UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from loyaltyapi.models.base import BaseModel, BigIntegerPK, generate_uuid
from loyaltyapi.utils.timezone_utils import utc_now

# Largest amount one award or one coupon price may carry (32-bit signed)
MAX_POINTS_AMOUNT = 2_147_483_647


class LoyaltyBalance(BaseModel):
    """Aggregate balance per (user, business)"""

    __tablename__ = "user_loyalty_points"
    __table_args__ = (
        UniqueConstraint("user_id", "business_id", name="uq_user_loyalty_points"),
        CheckConstraint("total_points >= 0", name="ck_user_loyalty_points_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    business_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("businesses.id"), nullable=False
    )
    total_points: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)


class CouponPointsBalance(BaseModel):
    """Stamp counter per (user, business, coupon)"""

    __tablename__ = "coupon_specific_points"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "business_id", "coupon_id", name="uq_coupon_specific_points"
        ),
        CheckConstraint("points >= 0", name="ck_coupon_specific_points_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    business_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("businesses.id"), nullable=False
    )
    coupon_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("coupons.id"), nullable=False
    )
    points: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )


class PointAward(BaseModel):
    """
    One row per successful award. Written in the same transaction as the
    balance change; never updated.
    """

    __tablename__ = "loyalty_points"
    __table_args__ = (
        Index("idx_loyalty_points_user_id", "user_id"),
        Index("idx_loyalty_points_business_id", "business_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    business_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("businesses.id"), nullable=False
    )
    coupon_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("coupons.id"), nullable=True
    )
    points: Mapped[int] = mapped_column(BigInteger, nullable=False)
    awarded_by: Mapped[str] = mapped_column(String(64), nullable=False)
    code_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("qr_codes.id", ondelete="SET NULL"), nullable=True
    )
    awarded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
