"""
Staff endpoints

- POST /staff/scan: resolve a scanned payload and award or verify
- POST /staff/award-points: award on a profile code
- POST /staff/verify-coupon: verify a redeemed coupon
- GET /staff/action-history: audit trail (own rows; owners see the business)
"""

from fastapi import APIRouter, Depends, Query

from loyaltyapi.core.auth_middleware import require_staff
from loyaltyapi.deps import get_action_log_service, get_verifier_service
from loyaltyapi.schemas.auth import Principal
from loyaltyapi.schemas.points import AwardPointsResult
from loyaltyapi.schemas.staff import (
    AwardPointsRequest,
    CouponVerificationResult,
    ScanRequest,
    ScanResponse,
    StaffActionHistoryResponse,
    VerifyCouponRequest,
)
from loyaltyapi.services.action_log_service import ActionLogService
from loyaltyapi.services.verifier_service import VerifierService

router = APIRouter(prefix="/staff", tags=["staff"])


@router.post("/scan", response_model=ScanResponse)
def scan(
    request: ScanRequest,
    principal: Principal = Depends(require_staff),
    verifier: VerifierService = Depends(get_verifier_service),
) -> ScanResponse:
    """
    Single entry point for the counter scanner.

    Profile codes award ``amount`` points, redemption ids are verified.
    With ``action`` set, a payload of the other kind is rejected.
    """
    return verifier.scan(
        principal,
        request.qr_code_data,
        amount=request.amount,
        coupon_id=request.coupon_id,
        action=request.action,
    )


@router.post("/award-points", response_model=AwardPointsResult)
def award_points(
    request: AwardPointsRequest,
    principal: Principal = Depends(require_staff),
    verifier: VerifierService = Depends(get_verifier_service),
) -> AwardPointsResult:
    return verifier.award_from_scan(
        principal, request.qr_code_data, request.amount, coupon_id=request.coupon_id
    )


@router.post("/verify-coupon", response_model=CouponVerificationResult)
def verify_coupon(
    request: VerifyCouponRequest,
    principal: Principal = Depends(require_staff),
    verifier: VerifierService = Depends(get_verifier_service),
) -> CouponVerificationResult:
    return verifier.verify_from_scan(principal, request.qr_code_data)


@router.get("/action-history", response_model=StaffActionHistoryResponse)
def get_action_history(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(require_staff),
    action_log: ActionLogService = Depends(get_action_log_service),
) -> StaffActionHistoryResponse:
    return action_log.get_action_history(principal, limit=limit, offset=offset)
