from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from loyaltyapi.schemas.base import CamelModel
from loyaltyapi.schemas.coupon import CouponItem


class AwardPointsResult(CamelModel):
    """Outcome of a successful award"""

    user_id: str = Field(..., description="Customer that received the points")
    business_id: str
    coupon_id: Optional[str] = Field(None, description="Set for per-coupon stamp awards")
    awarded_points: int = Field(..., description="Points added")
    total_points: int = Field(..., description="Balance after the award")


class RedeemCouponRequest(CamelModel):
    coupon_id: str = Field(..., min_length=1, description="Coupon to redeem")


class RedeemedCouponItem(CamelModel):
    id: str = Field(..., description="Redemption ID, shown as QR code for verification")
    user_id: str
    business_id: str
    coupon_id: str
    points_spent: int
    redeemed_at: datetime
    verified: bool
    verified_at: Optional[datetime] = None


class RedemptionResponse(CamelModel):
    message: str = "Coupon redeemed successfully"
    redemption: RedeemedCouponItem
    remaining_points: int = Field(..., description="Balance left after paying for the coupon")


class RedeemedCouponDetail(CamelModel):
    redemption: RedeemedCouponItem
    coupon: CouponItem


class BusinessPoints(CamelModel):
    """Aggregate balance at one business"""

    id: str = Field(..., description="Business ID")
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    points: int


class UserBusinessesResponse(CamelModel):
    businesses: List[BusinessPoints]


class CouponPoints(CamelModel):
    """Stamp balance toward one coupon"""

    coupon_id: str
    coupon_name: str
    points: int
    points_required: int
    last_updated: Optional[datetime] = None


class CouponPointsResponse(CamelModel):
    business_id: str
    coupon_points: List[CouponPoints]


class HistoryType(str, Enum):
    POINTS_AWARDED = "POINTS_AWARDED"
    COUPON_REDEEMED = "COUPON_REDEEMED"
    COUPON_VERIFIED = "COUPON_VERIFIED"


class HistoryItem(CamelModel):
    type: HistoryType
    timestamp: datetime
    business_id: str
    business_name: str = ""
    points: Optional[int] = None
    coupon_id: Optional[str] = None
    coupon_name: Optional[str] = None
    points_required: Optional[int] = None
    verified: Optional[bool] = None


class UserHistoryResponse(CamelModel):
    history: List[HistoryItem]


class AccountErasureResponse(CamelModel):
    message: str = "Loyalty data erased"
    deleted_rows: int
