from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import desc
from sqlalchemy.orm import Session

from loyaltyapi.models.business import Business
from loyaltyapi.models.coupon import Coupon, RedeemedCoupon
from loyaltyapi.repositories.base import BaseRepository
from loyaltyapi.schemas.coupon import CouponItem
from loyaltyapi.schemas.points import RedeemedCouponItem
from loyaltyapi.utils.timezone_utils import utc_now


class CouponRepository(BaseRepository[Coupon, CouponItem]):
    """Coupon definitions"""

    def __init__(self, db: Session):
        super().__init__(Coupon, CouponItem, db)

    def get(self, coupon_id: str) -> Optional[Coupon]:
        return self.get_model(coupon_id)

    def get_for_business(self, coupon_id: str, business_id: str) -> Optional[Coupon]:
        return (
            self.db.query(Coupon)
            .filter(Coupon.id == coupon_id, Coupon.business_id == business_id)
            .first()
        )

    def list_by_business(self, business_id: str, active_only: bool = False) -> List[CouponItem]:
        query = self.db.query(Coupon).filter(Coupon.business_id == business_id)
        if active_only:
            query = query.filter(Coupon.is_active.is_(True))
        coupons = query.order_by(Coupon.points_required, Coupon.name).populate_existing().all()
        return [self._to_schema(coupon) for coupon in coupons]

    def deactivate(self, coupon_id: str, business_id: str) -> bool:
        """Soft delete; coupons are never removed while redemptions exist"""
        updated_count = (
            self.db.query(Coupon)
            .filter(Coupon.id == coupon_id, Coupon.business_id == business_id)
            .update({Coupon.is_active: False}, synchronize_session=False)
        )
        return updated_count > 0


class RedeemedCouponRepository(BaseRepository[RedeemedCoupon, RedeemedCouponItem]):
    """Coupon claims awaiting or past staff verification"""

    def __init__(self, db: Session):
        super().__init__(RedeemedCoupon, RedeemedCouponItem, db)

    def add_redemption(
        self, user_id: str, coupon: Coupon, points_spent: int
    ) -> RedeemedCoupon:
        return self.create(
            user_id=user_id,
            business_id=coupon.business_id,
            coupon_id=coupon.id,
            points_spent=points_spent,
            redeemed_at=utc_now(),
            verified=False,
        )

    def get_with_coupon(self, redemption_id: str) -> Optional[Tuple[RedeemedCoupon, Coupon]]:
        row = (
            self.db.query(RedeemedCoupon, Coupon)
            .join(Coupon, Coupon.id == RedeemedCoupon.coupon_id)
            .filter(RedeemedCoupon.id == redemption_id)
            .populate_existing()
            .first()
        )
        return (row[0], row[1]) if row else None

    def exists(self, redemption_id: str) -> bool:
        return (
            self.db.query(RedeemedCoupon.id)
            .filter(RedeemedCoupon.id == redemption_id)
            .first()
            is not None
        )

    def is_verified(self, redemption_id: str) -> Optional[bool]:
        """Committed verification flag, None when the redemption is gone"""
        return (
            self.db.query(RedeemedCoupon.verified)
            .filter(RedeemedCoupon.id == redemption_id)
            .scalar()
        )

    def claim_verification(
        self,
        redemption_id: str,
        business_id: str,
        verified_by: str,
        verified_at: datetime,
        redeemed_after: Optional[datetime] = None,
    ) -> bool:
        """
        Flip ``verified`` false -> true with one conditional UPDATE.

        Returns False when another request verified it first (or when it
        fell out of the verification window in the meantime).
        """
        query = self.db.query(RedeemedCoupon).filter(
            RedeemedCoupon.id == redemption_id,
            RedeemedCoupon.business_id == business_id,
            RedeemedCoupon.verified.is_(False),
        )
        if redeemed_after is not None:
            query = query.filter(RedeemedCoupon.redeemed_at >= redeemed_after)

        updated_count = query.update(
            {
                RedeemedCoupon.verified: True,
                RedeemedCoupon.verified_at: verified_at,
                RedeemedCoupon.verified_by: verified_by,
            },
            synchronize_session=False,
        )
        return updated_count == 1

    def get_user_redemptions(
        self, user_id: str
    ) -> List[Tuple[RedeemedCoupon, Coupon, str]]:
        """Redemptions with coupon and business name, newest first"""
        return (
            self.db.query(RedeemedCoupon, Coupon, Business.name)
            .join(Coupon, Coupon.id == RedeemedCoupon.coupon_id)
            .join(Business, Business.id == RedeemedCoupon.business_id)
            .filter(RedeemedCoupon.user_id == user_id)
            .order_by(desc(RedeemedCoupon.redeemed_at))
            .populate_existing()
            .all()
        )

    def delete_for_user(self, user_id: str) -> int:
        return self.delete_where(user_id=user_id)
