"""
Ledger - points balances and coupon redemptions.

Every mutation runs in one transaction that starts with a single-statement
conditional write (code claim, balance decrement), so two concurrent
requests can never both spend the same unit of value. Nothing is written
when any precondition fails.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from loyaltyapi.config import Settings
from loyaltyapi.core.exceptions import (
    AuthorizationError,
    CodeAlreadyUsedError,
    CouponInactiveError,
    InsufficientBalanceError,
    InternalServerError,
    NotFoundError,
    ValidationError,
)
from loyaltyapi.models.business import Business, LoyaltyType
from loyaltyapi.models.coupon import Coupon
from loyaltyapi.models.points import MAX_POINTS_AMOUNT
from loyaltyapi.models.staff_action import StaffActionType
from loyaltyapi.repositories.business_repository import BusinessRepository
from loyaltyapi.repositories.coupon_repository import (
    CouponRepository,
    RedeemedCouponRepository,
)
from loyaltyapi.repositories.points_repository import PointsRepository
from loyaltyapi.repositories.redemption_code_repository import RedemptionCodeRepository
from loyaltyapi.schemas.auth import Principal
from loyaltyapi.schemas.coupon import CouponItem
from loyaltyapi.schemas.points import (
    AccountErasureResponse,
    AwardPointsResult,
    CouponPointsResponse,
    HistoryItem,
    HistoryType,
    RedeemedCouponDetail,
    RedeemedCouponItem,
    RedemptionResponse,
    UserBusinessesResponse,
    UserHistoryResponse,
)
from loyaltyapi.services.access import ensure_client, ensure_staff
from loyaltyapi.services.action_log_service import ActionLogService
from loyaltyapi.utils.timezone_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


def validate_points_amount(amount) -> int:
    if (
        isinstance(amount, bool)
        or not isinstance(amount, int)
        or not 0 < amount <= MAX_POINTS_AMOUNT
    ):
        raise ValidationError(
            "Invalid input. Please provide a positive whole number of points.",
            details={"amount": amount},
        )
    return amount


class LedgerService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        action_log: Optional[ActionLogService] = None,
    ):
        self.db = db
        self.settings = settings
        self.code_repo = RedemptionCodeRepository(db)
        self.business_repo = BusinessRepository(db)
        self.coupon_repo = CouponRepository(db)
        self.redeemed_repo = RedeemedCouponRepository(db)
        self.points_repo = PointsRepository(db)
        self.action_log = action_log or ActionLogService(db, settings)

    def _get_business(self, business_id: str) -> Business:
        business = self.business_repo.get(business_id)
        if business is None:
            raise NotFoundError("Business not found")
        return business

    def _resolve_award_coupon(
        self, business: Business, coupon_id: Optional[str]
    ) -> Optional[Coupon]:
        """Per-coupon businesses stamp one coupon, aggregate ones take none"""
        if business.loyalty_type == LoyaltyType.COUPON_SPECIFIC:
            if not coupon_id:
                raise ValidationError("Coupon ID is required for coupon-specific loyalty")
            coupon = self.coupon_repo.get_for_business(coupon_id, business.id)
            if coupon is None:
                raise NotFoundError("Coupon not found or not associated with this business")
            if not coupon.is_active:
                raise CouponInactiveError()
            return coupon

        if coupon_id:
            raise ValidationError("This business does not use coupon-specific points")
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def award_points(
        self,
        principal: Principal,
        code_payload: str,
        amount: int,
        coupon_id: Optional[str] = None,
        business_id: Optional[str] = None,
    ) -> AwardPointsResult:
        """Consume a profile code and credit its owner.

        Args:
            principal: staff member or owner performing the award
            code_payload: scanned profile code
            amount: points to add, a positive integer
            coupon_id: coupon to stamp, only for coupon-specific businesses
            business_id: defaults to the principal's business and must match it

        Returns:
            AwardPointsResult: recipient and new balance

        Raises:
            CodeAlreadyUsedError: the code is unknown or was consumed before
        """
        staff_business_id = ensure_staff(principal, "Only staff members can award points")
        if business_id is not None and business_id != staff_business_id:
            raise AuthorizationError("Staff can only award points for their own business")

        amount = validate_points_amount(amount)
        payload = (code_payload or "").strip()
        if not payload:
            raise ValidationError("Invalid input. Please provide QR code data.")

        business = self._get_business(staff_business_id)
        coupon = self._resolve_award_coupon(business, coupon_id)
        coupon_key = coupon.id if coupon is not None else None

        claimed = None
        try:
            claimed = self.code_repo.claim(payload, utc_now())
            if claimed is not None:
                if coupon is not None:
                    total = self.points_repo.increment_coupon_points(
                        claimed.user_id, business.id, coupon.id, amount
                    )
                else:
                    total = self.points_repo.increment_total_points(
                        claimed.user_id, business.id, amount
                    )
                self.points_repo.add_award(
                    user_id=claimed.user_id,
                    business_id=business.id,
                    points=amount,
                    awarded_by=principal.user_id,
                    code_id=claimed.id,
                    coupon_id=coupon_key,
                )
                self.db.commit()
            else:
                self.db.rollback()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to award {amount} points at {business.id}: {str(e)}")
            raise InternalServerError("Error awarding loyalty points")

        if claimed is None:
            logger.warning(f"Rejected award by {principal.user_id}: code unknown or already used")
            raise CodeAlreadyUsedError()

        logger.info(
            f"Awarded {amount} points to {claimed.user_id} at {business.id} "
            f"(coupon={coupon_key}) by {principal.user_id}"
        )
        self.action_log.record_action(
            principal,
            StaffActionType.AWARD_POINTS,
            {
                "recipient_user_id": claimed.user_id,
                "points": amount,
                "coupon_id": coupon_key,
                "coupon_name": coupon.name if coupon is not None else None,
                "code_id": claimed.id,
                "total_points": total,
            },
        )
        return AwardPointsResult(
            user_id=claimed.user_id,
            business_id=business.id,
            coupon_id=coupon_key,
            awarded_points=amount,
            total_points=total,
        )

    def _current_balance(self, user_id: str, business: Business, coupon: Coupon) -> int:
        if business.loyalty_type == LoyaltyType.COUPON_SPECIFIC:
            return self.points_repo.get_coupon_points(user_id, business.id, coupon.id)
        return self.points_repo.get_total_points(user_id, business.id)

    def redeem_coupon(self, principal: Principal, coupon_id: str) -> RedemptionResponse:
        """Pay for a coupon out of the matching balance.

        The balance decrement and the redemption record commit together; an
        insufficient balance leaves everything untouched.
        """
        ensure_client(principal, "Only customers can redeem coupons")

        coupon = self.coupon_repo.get(coupon_id)
        if coupon is None:
            raise NotFoundError("Coupon not found")
        if not coupon.is_active:
            raise CouponInactiveError()
        business = self._get_business(coupon.business_id)

        user_id = principal.user_id
        cost = coupon.points_required
        paid = False
        try:
            if business.loyalty_type == LoyaltyType.COUPON_SPECIFIC:
                paid = self.points_repo.decrement_coupon_points(
                    user_id, business.id, coupon.id, cost
                )
            else:
                paid = self.points_repo.decrement_total_points(user_id, business.id, cost)

            if paid:
                redemption = self.redeemed_repo.add_redemption(user_id, coupon, cost)
                remaining = self._current_balance(user_id, business, coupon)
                self.db.commit()
            else:
                self.db.rollback()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to redeem coupon {coupon.id} for {user_id}: {str(e)}")
            raise InternalServerError("Error redeeming coupon")

        if not paid:
            current = self._current_balance(user_id, business, coupon)
            raise InsufficientBalanceError(
                details={"current_points": current, "points_required": cost}
            )

        logger.info(f"User {user_id} redeemed coupon {coupon.id} for {cost} points")
        return RedemptionResponse(
            redemption=RedeemedCouponItem.model_validate(redemption),
            remaining_points=remaining,
        )

    def erase_user_data(self, principal: Principal) -> AccountErasureResponse:
        """Remove the caller's codes, balances, awards and redemptions.

        Staff action rows stay; the audit trail is append-only.
        """
        ensure_client(principal, "Only customer accounts can be erased")
        try:
            deleted = self.points_repo.delete_for_user(principal.user_id)
            deleted += self.redeemed_repo.delete_for_user(principal.user_id)
            deleted += self.code_repo.delete_for_user(principal.user_id)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to erase loyalty data of {principal.user_id}: {str(e)}")
            raise InternalServerError("Error deleting account data")

        logger.info(f"Erased {deleted} loyalty rows of user {principal.user_id}")
        return AccountErasureResponse(deleted_rows=deleted)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_user_businesses_with_points(self, principal: Principal) -> UserBusinessesResponse:
        return UserBusinessesResponse(
            businesses=self.points_repo.get_user_businesses_with_points(principal.user_id)
        )

    def get_coupon_points(self, principal: Principal, business_id: str) -> CouponPointsResponse:
        business = self._get_business(business_id)
        return CouponPointsResponse(
            business_id=business.id,
            coupon_points=self.points_repo.get_coupon_points_for_business(
                principal.user_id, business.id
            ),
        )

    def get_redeemed_coupon(
        self, principal: Principal, redemption_id: str
    ) -> RedeemedCouponDetail:
        found = self.redeemed_repo.get_with_coupon(redemption_id)
        if found is None or found[0].user_id != principal.user_id:
            raise NotFoundError("Redeemed coupon not found")
        redemption, coupon = found
        return RedeemedCouponDetail(
            redemption=RedeemedCouponItem.model_validate(redemption),
            coupon=CouponItem.model_validate(coupon),
        )

    def get_user_history(self, principal: Principal) -> UserHistoryResponse:
        """Awards, redemptions and verifications, newest first"""
        history: List[HistoryItem] = []

        for award, business_name, coupon_name in self.points_repo.get_user_awards(
            principal.user_id
        ):
            history.append(
                HistoryItem(
                    type=HistoryType.POINTS_AWARDED,
                    timestamp=ensure_utc(award.awarded_at),
                    business_id=award.business_id,
                    business_name=business_name,
                    points=award.points,
                    coupon_id=award.coupon_id,
                    coupon_name=coupon_name,
                )
            )

        for redemption, coupon, business_name in self.redeemed_repo.get_user_redemptions(
            principal.user_id
        ):
            item = HistoryItem(
                type=HistoryType.COUPON_REDEEMED,
                timestamp=ensure_utc(redemption.redeemed_at),
                business_id=redemption.business_id,
                business_name=business_name,
                points=redemption.points_spent,
                coupon_id=coupon.id,
                coupon_name=coupon.name,
                points_required=coupon.points_required,
                verified=redemption.verified,
            )
            history.append(item)
            if redemption.verified and redemption.verified_at is not None:
                history.append(
                    item.model_copy(
                        update={
                            "type": HistoryType.COUPON_VERIFIED,
                            "timestamp": ensure_utc(redemption.verified_at),
                        }
                    )
                )

        history.sort(key=lambda h: h.timestamp, reverse=True)
        return UserHistoryResponse(history=history)
