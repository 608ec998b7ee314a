"""
Customer-facing endpoints

- GET /client/qr-code: current profile code (fetch-or-create)
- GET /client/loyalty/user-points: aggregate balances per business
- GET /client/loyalty/coupon-points/{business_id}: stamp balances per coupon
- GET /client/loyalty/coupons/business/{business_id}: coupons of a business
- POST /client/loyalty/redeem: pay for a coupon
- GET /client/loyalty/redeemed-coupon/{redemption_id}: one of my redemptions
- GET /client/history: awards, redemptions and verifications
- DELETE /client/account: erase my loyalty data
"""

from fastapi import APIRouter, Depends, Path

from loyaltyapi.core.auth_middleware import get_current_principal, require_client
from loyaltyapi.deps import (
    get_code_issuer_service,
    get_coupon_service,
    get_ledger_service,
)
from loyaltyapi.schemas.auth import Principal
from loyaltyapi.schemas.coupon import CouponListResponse
from loyaltyapi.schemas.points import (
    AccountErasureResponse,
    CouponPointsResponse,
    RedeemCouponRequest,
    RedeemedCouponDetail,
    RedemptionResponse,
    UserBusinessesResponse,
    UserHistoryResponse,
)
from loyaltyapi.schemas.qr_code import QRCodeResponse
from loyaltyapi.services.code_issuer_service import CodeIssuerService
from loyaltyapi.services.coupon_service import CouponService
from loyaltyapi.services.ledger_service import LedgerService

router = APIRouter(prefix="/client", tags=["client"])


@router.get("/qr-code", response_model=QRCodeResponse)
def get_qr_code(
    principal: Principal = Depends(require_client),
    code_issuer: CodeIssuerService = Depends(get_code_issuer_service),
) -> QRCodeResponse:
    """
    Profile code to show at the counter.

    The same code comes back until staff scan it; the next call after
    that issues a fresh one.
    """
    return code_issuer.issue_or_fetch_code(principal)


@router.get("/loyalty/user-points", response_model=UserBusinessesResponse)
def get_user_points(
    principal: Principal = Depends(require_client),
    ledger: LedgerService = Depends(get_ledger_service),
) -> UserBusinessesResponse:
    return ledger.get_user_businesses_with_points(principal)


@router.get("/loyalty/coupon-points/{business_id}", response_model=CouponPointsResponse)
def get_coupon_points(
    business_id: str = Path(..., description="Business ID"),
    principal: Principal = Depends(require_client),
    ledger: LedgerService = Depends(get_ledger_service),
) -> CouponPointsResponse:
    return ledger.get_coupon_points(principal, business_id)


@router.get("/loyalty/coupons/business/{business_id}", response_model=CouponListResponse)
def get_business_coupons(
    business_id: str = Path(..., description="Business ID"),
    principal: Principal = Depends(get_current_principal),
    coupon_service: CouponService = Depends(get_coupon_service),
) -> CouponListResponse:
    """Active coupons of a business"""
    return coupon_service.list_business_coupons(business_id)


@router.post("/loyalty/redeem", response_model=RedemptionResponse)
def redeem_coupon(
    request: RedeemCouponRequest,
    principal: Principal = Depends(require_client),
    ledger: LedgerService = Depends(get_ledger_service),
) -> RedemptionResponse:
    """
    Spend points on a coupon.

    HTTP Status:
        200: redeemed, the redemption id is the verification QR payload
        400: insufficient points or inactive coupon
        404: unknown coupon
    """
    return ledger.redeem_coupon(principal, request.coupon_id)


@router.get("/loyalty/redeemed-coupon/{redemption_id}", response_model=RedeemedCouponDetail)
def get_redeemed_coupon(
    redemption_id: str = Path(..., description="Redemption ID"),
    principal: Principal = Depends(require_client),
    ledger: LedgerService = Depends(get_ledger_service),
) -> RedeemedCouponDetail:
    return ledger.get_redeemed_coupon(principal, redemption_id)


@router.get("/history", response_model=UserHistoryResponse)
def get_history(
    principal: Principal = Depends(require_client),
    ledger: LedgerService = Depends(get_ledger_service),
) -> UserHistoryResponse:
    return ledger.get_user_history(principal)


@router.delete("/account", response_model=AccountErasureResponse)
def delete_account(
    principal: Principal = Depends(require_client),
    ledger: LedgerService = Depends(get_ledger_service),
) -> AccountErasureResponse:
    """Erase codes, balances, awards and redemptions of the caller"""
    return ledger.erase_user_data(principal)
