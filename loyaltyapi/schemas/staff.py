from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from loyaltyapi.models.points import MAX_POINTS_AMOUNT
from loyaltyapi.models.staff_action import StaffActionType
from loyaltyapi.schemas.base import CamelModel
from loyaltyapi.schemas.coupon import CouponItem
from loyaltyapi.schemas.points import AwardPointsResult, RedeemedCouponItem


class ScanAction(str, Enum):
    """What the staff member intends to do with a scanned payload"""

    AWARD = "award"
    VERIFY = "verify"


class ScanTargetKind(str, Enum):
    PROFILE_CODE = "PROFILE_CODE"
    COUPON_CODE = "COUPON_CODE"
    UNRECOGNIZED = "UNRECOGNIZED"


class ScanRequest(CamelModel):
    qr_code_data: str = Field(..., description="Scanned payload")
    amount: Optional[int] = Field(
        None, gt=0, le=MAX_POINTS_AMOUNT, description="Points to award for profile codes"
    )
    coupon_id: Optional[str] = Field(None, description="Coupon to stamp (per-coupon businesses)")
    action: Optional[ScanAction] = Field(None, description="Expected payload kind")


class AwardPointsRequest(CamelModel):
    qr_code_data: str = Field(..., description="Scanned profile code")
    amount: int = Field(..., gt=0, le=MAX_POINTS_AMOUNT, description="Points to award")
    coupon_id: Optional[str] = None


class VerifyCouponRequest(CamelModel):
    qr_code_data: str = Field(..., description="Scanned redemption ID")


class CouponVerificationResult(CamelModel):
    message: str = "Coupon verified successfully"
    coupon: CouponItem
    redemption: RedeemedCouponItem


class ScanResponse(CamelModel):
    kind: ScanTargetKind
    award: Optional[AwardPointsResult] = None
    verification: Optional[CouponVerificationResult] = None


class StaffActionEntry(CamelModel):
    id: int
    staff_user_id: str
    business_id: str
    action_type: StaffActionType
    action_details: Optional[Dict[str, Any]] = None
    performed_at: datetime


class StaffActionHistoryResponse(CamelModel):
    actions: List[StaffActionEntry]
    total_count: int
    has_next: bool
