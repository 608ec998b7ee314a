"""Owner dashboard: coupon catalogue of the owner's business"""

from fastapi import APIRouter, Depends, Path, status

from loyaltyapi.core.auth_middleware import require_owner, require_staff
from loyaltyapi.deps import get_coupon_service
from loyaltyapi.schemas.auth import Principal
from loyaltyapi.schemas.coupon import (
    CouponCreateRequest,
    CouponDeactivateResponse,
    CouponItem,
    CouponListResponse,
)
from loyaltyapi.services.coupon_service import CouponService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.post("/coupons", response_model=CouponItem, status_code=status.HTTP_201_CREATED)
def create_coupon(
    request: CouponCreateRequest,
    principal: Principal = Depends(require_owner),
    coupon_service: CouponService = Depends(get_coupon_service),
) -> CouponItem:
    return coupon_service.create_coupon(principal, request)


@router.get("/coupons", response_model=CouponListResponse)
def list_coupons(
    principal: Principal = Depends(require_staff),
    coupon_service: CouponService = Depends(get_coupon_service),
) -> CouponListResponse:
    """All coupons of the business, inactive ones included"""
    return coupon_service.list_owner_coupons(principal)


@router.delete("/coupons/{coupon_id}", response_model=CouponDeactivateResponse)
def delete_coupon(
    coupon_id: str = Path(..., description="Coupon ID"),
    principal: Principal = Depends(require_owner),
    coupon_service: CouponService = Depends(get_coupon_service),
) -> CouponDeactivateResponse:
    """Soft delete: the coupon is deactivated, redemptions keep pointing at it"""
    return coupon_service.deactivate_coupon(principal, coupon_id)
