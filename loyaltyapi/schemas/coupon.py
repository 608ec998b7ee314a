from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from loyaltyapi.models.points import MAX_POINTS_AMOUNT
from loyaltyapi.schemas.base import CamelModel


class CouponItem(CamelModel):
    """Coupon definition"""

    id: str = Field(..., description="Coupon ID")
    business_id: str = Field(..., description="Owning business")
    name: str = Field(..., description="Coupon name")
    description: Optional[str] = Field(None, description="Coupon description")
    points_required: int = Field(..., description="Points needed to redeem")
    is_active: bool = Field(..., description="False once deactivated")
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None


class CouponCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    points_required: int = Field(
        ..., gt=0, le=MAX_POINTS_AMOUNT, description="Points threshold"
    )
    image_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        if v.strip() == "":
            raise ValueError("Coupon name cannot be empty")
        return v.strip()


class CouponListResponse(CamelModel):
    coupons: List[CouponItem]
    total_count: int


class CouponDeactivateResponse(CamelModel):
    message: str = "Coupon deactivated successfully"
    deactivated_coupon_id: str
