import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from loyaltyapi.config import Settings
from loyaltyapi.core.exceptions import (
    AuthorizationError,
    CodeAlreadyUsedError,
    CouponAlreadyVerifiedError,
    CouponVerificationExpiredError,
    InternalServerError,
    NotFoundError,
    ScanTargetMismatchError,
    ValidationError,
)
from loyaltyapi.models.staff_action import StaffActionType
from loyaltyapi.repositories.coupon_repository import RedeemedCouponRepository
from loyaltyapi.repositories.redemption_code_repository import RedemptionCodeRepository
from loyaltyapi.schemas.auth import Principal
from loyaltyapi.schemas.coupon import CouponItem
from loyaltyapi.schemas.points import RedeemedCouponItem
from loyaltyapi.schemas.staff import (
    CouponVerificationResult,
    ScanAction,
    ScanResponse,
    ScanTargetKind,
)
from loyaltyapi.services.access import ensure_staff
from loyaltyapi.services.action_log_service import ActionLogService
from loyaltyapi.services.ledger_service import LedgerService
from loyaltyapi.utils.timezone_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)

PROFILE_CODE_AS_COUPON = "This is a profile code, not a coupon code"
COUPON_CODE_AS_PROFILE = "This is a coupon code, not a profile code"


@dataclass(frozen=True)
class ScanTarget:
    """What a scanned payload refers to"""

    kind: ScanTargetKind
    payload: str
    target_id: Optional[str] = None


class VerifierService:
    """Staff-side scanning: award on profile codes, verify redeemed coupons"""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        ledger: Optional[LedgerService] = None,
        action_log: Optional[ActionLogService] = None,
    ):
        self.db = db
        self.settings = settings
        self.code_repo = RedemptionCodeRepository(db)
        self.redeemed_repo = RedeemedCouponRepository(db)
        self.action_log = action_log or ActionLogService(db, settings)
        self.ledger = ledger or LedgerService(db, settings, self.action_log)

    def resolve_scan_target(self, payload: str) -> ScanTarget:
        """Classify a payload without changing anything.

        Profile codes are looked up first; a used profile code still counts
        as one so the award path reports it as already used.
        """
        payload = (payload or "").strip()
        if not payload:
            return ScanTarget(ScanTargetKind.UNRECOGNIZED, payload)

        code = self.code_repo.get_by_payload(payload)
        if code is not None:
            return ScanTarget(ScanTargetKind.PROFILE_CODE, payload, code.id)

        if self.redeemed_repo.exists(payload):
            return ScanTarget(ScanTargetKind.COUPON_CODE, payload, payload)

        return ScanTarget(ScanTargetKind.UNRECOGNIZED, payload)

    def scan(
        self,
        principal: Principal,
        qr_code_data: str,
        amount: Optional[int] = None,
        coupon_id: Optional[str] = None,
        action: Optional[ScanAction] = None,
    ) -> ScanResponse:
        """Dispatch a scanned payload to award or verification.

        ``action`` states what the staff member expects to scan; a payload
        of the other kind is rejected before anything is mutated.
        """
        ensure_staff(principal)
        if not (qr_code_data or "").strip():
            raise ValidationError("Invalid input. Please provide QR code data.")

        target = self.resolve_scan_target(qr_code_data)

        if target.kind == ScanTargetKind.UNRECOGNIZED:
            if action == ScanAction.AWARD:
                raise CodeAlreadyUsedError()
            if action == ScanAction.VERIFY:
                raise NotFoundError("Coupon not found or not associated with this business")
            raise NotFoundError("QR code not recognized")

        if target.kind == ScanTargetKind.COUPON_CODE and action == ScanAction.AWARD:
            raise ScanTargetMismatchError(COUPON_CODE_AS_PROFILE)
        if target.kind == ScanTargetKind.PROFILE_CODE and action == ScanAction.VERIFY:
            raise ScanTargetMismatchError(PROFILE_CODE_AS_COUPON)

        if target.kind == ScanTargetKind.PROFILE_CODE:
            if amount is None:
                raise ValidationError("Invalid input. Please provide the points to award.")
            award = self.ledger.award_points(
                principal, target.payload, amount, coupon_id=coupon_id
            )
            return ScanResponse(kind=target.kind, award=award)

        verification = self.verify_coupon(principal, target.target_id)
        return ScanResponse(kind=target.kind, verification=verification)

    def award_from_scan(
        self,
        principal: Principal,
        qr_code_data: str,
        amount: int,
        coupon_id: Optional[str] = None,
    ):
        """Award endpoint: the payload must be a profile code"""
        return self.scan(
            principal, qr_code_data, amount=amount, coupon_id=coupon_id, action=ScanAction.AWARD
        ).award

    def verify_from_scan(self, principal: Principal, qr_code_data: str) -> CouponVerificationResult:
        """Verify endpoint: the payload must be a redeemed coupon"""
        return self.scan(principal, qr_code_data, action=ScanAction.VERIFY).verification

    def verify_coupon(
        self, principal: Principal, redemption_id: str
    ) -> CouponVerificationResult:
        """Mark a redemption as honoured at the counter, exactly once."""
        business_id = ensure_staff(principal, "Only staff members can verify coupons")

        found = self.redeemed_repo.get_with_coupon((redemption_id or "").strip())
        if found is None:
            raise NotFoundError("Coupon not found")
        redemption, coupon = found

        if redemption.business_id != business_id:
            raise AuthorizationError("Coupon not associated with this business")
        if redemption.verified:
            raise CouponAlreadyVerifiedError()

        now = utc_now()
        cutoff = None
        window = self.settings.COUPON_VERIFY_WINDOW_MINUTES
        if window > 0:
            cutoff = now - timedelta(minutes=window)
            if ensure_utc(redemption.redeemed_at) < cutoff:
                raise CouponVerificationExpiredError()

        try:
            verified = self.redeemed_repo.claim_verification(
                redemption.id,
                business_id,
                verified_by=principal.user_id,
                verified_at=now,
                redeemed_after=cutoff,
            )
            if verified:
                self.db.commit()
            else:
                self.db.rollback()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to verify redemption {redemption.id}: {str(e)}")
            raise InternalServerError("Error verifying coupon")

        if not verified:
            if cutoff is not None and self.redeemed_repo.is_verified(redemption.id) is False:
                logger.warning(f"Redemption {redemption.id} left the verification window")
                raise CouponVerificationExpiredError()
            logger.warning(f"Redemption {redemption.id} was verified concurrently")
            raise CouponAlreadyVerifiedError()

        logger.info(f"Redemption {redemption.id} verified by {principal.user_id}")
        self.action_log.record_action(
            principal,
            StaffActionType.VERIFY_COUPON,
            {
                "redemption_id": redemption.id,
                "coupon_id": coupon.id,
                "coupon_name": coupon.name,
                "customer_user_id": redemption.user_id,
                "points_spent": redemption.points_spent,
            },
        )

        item = RedeemedCouponItem.model_validate(redemption).model_copy(
            update={"verified": True, "verified_at": now}
        )
        return CouponVerificationResult(
            coupon=CouponItem.model_validate(coupon), redemption=item
        )
