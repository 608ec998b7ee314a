from .auth import Principal, UserRole
from .coupon import CouponItem
from .points import AwardPointsResult, RedeemedCouponItem
from .qr_code import QRCodeResponse
