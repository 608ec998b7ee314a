"""
Points repository - balance mutations and award history.

Core guarantees:
1. Increments are single-statement upserts (INSERT ... ON CONFLICT DO
   UPDATE), so concurrent awards to the same (user, business[, coupon]) never
   lose an update.
2. Decrements are conditional UPDATEs (``WHERE points >= amount``); a
   rowcount of zero means the balance was insufficient and nothing changed.
3. Aggregate balances (``user_loyalty_points``) and per-coupon stamp
   balances (``coupon_specific_points``) are separate tables and never share
   a counter.
"""

from typing import List, Optional, Tuple

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from loyaltyapi.models.business import Business
from loyaltyapi.models.coupon import Coupon
from loyaltyapi.models.points import CouponPointsBalance, LoyaltyBalance, PointAward
from loyaltyapi.repositories.base import BaseRepository
from loyaltyapi.schemas.points import BusinessPoints, CouponPoints
from loyaltyapi.utils.timezone_utils import utc_now


class PointsRepository(BaseRepository[LoyaltyBalance, BusinessPoints]):
    def __init__(self, db: Session):
        super().__init__(LoyaltyBalance, BusinessPoints, db)

    # ------------------------------------------------------------------
    # Aggregate balance
    # ------------------------------------------------------------------
    def get_total_points(self, user_id: str, business_id: str) -> int:
        total = (
            self.db.query(LoyaltyBalance.total_points)
            .filter(
                LoyaltyBalance.user_id == user_id,
                LoyaltyBalance.business_id == business_id,
            )
            .scalar()
        )
        return total or 0

    def increment_total_points(self, user_id: str, business_id: str, amount: int) -> int:
        """Insert-or-increment the aggregate balance, returns the new total"""
        stmt = self._upsert_insert(LoyaltyBalance).values(
            user_id=user_id, business_id=business_id, total_points=amount
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[LoyaltyBalance.user_id, LoyaltyBalance.business_id],
            set_={
                "total_points": LoyaltyBalance.total_points + stmt.excluded.total_points,
                "updated_at": func.now(),
            },
        ).returning(LoyaltyBalance.total_points)
        return self.db.execute(stmt).scalar_one()

    def decrement_total_points(self, user_id: str, business_id: str, amount: int) -> bool:
        """Subtract ``amount`` only if the balance covers it"""
        updated_count = (
            self.db.query(LoyaltyBalance)
            .filter(
                LoyaltyBalance.user_id == user_id,
                LoyaltyBalance.business_id == business_id,
                LoyaltyBalance.total_points >= amount,
            )
            .update(
                {
                    LoyaltyBalance.total_points: LoyaltyBalance.total_points - amount,
                    LoyaltyBalance.updated_at: func.now(),
                },
                synchronize_session=False,
            )
        )
        return updated_count == 1

    def get_user_businesses_with_points(self, user_id: str) -> List[BusinessPoints]:
        rows = (
            self.db.query(Business, LoyaltyBalance.total_points)
            .join(LoyaltyBalance, LoyaltyBalance.business_id == Business.id)
            .filter(LoyaltyBalance.user_id == user_id, LoyaltyBalance.total_points > 0)
            .order_by(desc(LoyaltyBalance.total_points))
            .all()
        )
        return [
            BusinessPoints(
                id=business.id,
                name=business.name,
                description=business.description,
                image_url=business.image_url,
                points=total_points,
            )
            for business, total_points in rows
        ]

    # ------------------------------------------------------------------
    # Per-coupon stamp balance
    # ------------------------------------------------------------------
    def get_coupon_points(self, user_id: str, business_id: str, coupon_id: str) -> int:
        points = (
            self.db.query(CouponPointsBalance.points)
            .filter(
                CouponPointsBalance.user_id == user_id,
                CouponPointsBalance.business_id == business_id,
                CouponPointsBalance.coupon_id == coupon_id,
            )
            .scalar()
        )
        return points or 0

    def increment_coupon_points(
        self, user_id: str, business_id: str, coupon_id: str, amount: int
    ) -> int:
        """Insert-or-increment the stamp counter for one coupon"""
        now = utc_now()
        stmt = self._upsert_insert(CouponPointsBalance).values(
            user_id=user_id,
            business_id=business_id,
            coupon_id=coupon_id,
            points=amount,
            last_updated=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[
                CouponPointsBalance.user_id,
                CouponPointsBalance.business_id,
                CouponPointsBalance.coupon_id,
            ],
            set_={
                "points": CouponPointsBalance.points + stmt.excluded.points,
                "last_updated": stmt.excluded.last_updated,
                "updated_at": func.now(),
            },
        ).returning(CouponPointsBalance.points)
        return self.db.execute(stmt).scalar_one()

    def decrement_coupon_points(
        self, user_id: str, business_id: str, coupon_id: str, amount: int
    ) -> bool:
        updated_count = (
            self.db.query(CouponPointsBalance)
            .filter(
                CouponPointsBalance.user_id == user_id,
                CouponPointsBalance.business_id == business_id,
                CouponPointsBalance.coupon_id == coupon_id,
                CouponPointsBalance.points >= amount,
            )
            .update(
                {
                    CouponPointsBalance.points: CouponPointsBalance.points - amount,
                    CouponPointsBalance.last_updated: utc_now(),
                },
                synchronize_session=False,
            )
        )
        return updated_count == 1

    def get_coupon_points_for_business(
        self, user_id: str, business_id: str
    ) -> List[CouponPoints]:
        rows: List[Tuple[CouponPointsBalance, Coupon]] = (
            self.db.query(CouponPointsBalance, Coupon)
            .join(Coupon, Coupon.id == CouponPointsBalance.coupon_id)
            .filter(
                CouponPointsBalance.user_id == user_id,
                CouponPointsBalance.business_id == business_id,
            )
            .order_by(desc(CouponPointsBalance.last_updated))
            .all()
        )
        return [
            CouponPoints(
                coupon_id=coupon.id,
                coupon_name=coupon.name,
                points=balance.points,
                points_required=coupon.points_required,
                last_updated=balance.last_updated,
            )
            for balance, coupon in rows
        ]

    # ------------------------------------------------------------------
    # Award history
    # ------------------------------------------------------------------
    def add_award(
        self,
        user_id: str,
        business_id: str,
        points: int,
        awarded_by: str,
        code_id: str,
        coupon_id: Optional[str] = None,
    ) -> PointAward:
        award = PointAward(
            user_id=user_id,
            business_id=business_id,
            coupon_id=coupon_id,
            points=points,
            awarded_by=awarded_by,
            code_id=code_id,
            awarded_at=utc_now(),
        )
        self.db.add(award)
        self.db.flush()
        return award

    def get_user_awards(self, user_id: str) -> List[Tuple[PointAward, str, Optional[str]]]:
        """Awards with business name and coupon name, newest first"""
        return (
            self.db.query(PointAward, Business.name, Coupon.name)
            .join(Business, Business.id == PointAward.business_id)
            .outerjoin(Coupon, Coupon.id == PointAward.coupon_id)
            .filter(PointAward.user_id == user_id)
            .order_by(desc(PointAward.awarded_at))
            .all()
        )

    def delete_for_user(self, user_id: str) -> int:
        deleted = (
            self.db.query(PointAward)
            .filter(PointAward.user_id == user_id)
            .delete(synchronize_session=False)
        )
        deleted += (
            self.db.query(CouponPointsBalance)
            .filter(CouponPointsBalance.user_id == user_id)
            .delete(synchronize_session=False)
        )
        deleted += (
            self.db.query(LoyaltyBalance)
            .filter(LoyaltyBalance.user_id == user_id)
            .delete(synchronize_session=False)
        )
        return deleted
