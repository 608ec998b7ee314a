import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Enum, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from loyaltyapi.models.base import BaseModel, BigIntegerPK
from loyaltyapi.utils.timezone_utils import utc_now


class StaffActionType(str, enum.Enum):
    AWARD_POINTS = "AWARD_POINTS"
    VERIFY_COUPON = "VERIFY_COUPON"


class StaffAction(BaseModel):
    """Append-only audit trail of staff ledger operations."""

    __tablename__ = "staff_actions"
    __table_args__ = (
        Index("idx_staff_actions_staff_user_id", "staff_user_id"),
        Index("idx_staff_actions_business_id", "business_id"),
    )

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    staff_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    business_id: Mapped[str] = mapped_column(String(36), nullable=False)
    action_type: Mapped[StaffActionType] = mapped_column(
        Enum(StaffActionType, name="staff_action_type"), nullable=False
    )
    action_details: Mapped[Optional[dict]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=True
    )
    performed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
