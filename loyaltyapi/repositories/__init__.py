# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .business_repository import BusinessRepository
from .coupon_repository import CouponRepository, RedeemedCouponRepository
from .points_repository import PointsRepository
from .redemption_code_repository import RedemptionCodeRepository
from .staff_action_repository import StaffActionRepository

__all__ = [
    "BaseRepository",
    "BusinessRepository",
    "CouponRepository",
    "RedeemedCouponRepository",
    "PointsRepository",
    "RedemptionCodeRepository",
    "StaffActionRepository",
]
