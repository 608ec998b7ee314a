import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from loyaltyapi.config import Settings
from loyaltyapi.core.exceptions import InternalServerError, NotFoundError
from loyaltyapi.repositories.business_repository import BusinessRepository
from loyaltyapi.repositories.coupon_repository import CouponRepository
from loyaltyapi.schemas.auth import Principal
from loyaltyapi.schemas.coupon import (
    CouponCreateRequest,
    CouponDeactivateResponse,
    CouponItem,
    CouponListResponse,
)
from loyaltyapi.services.access import ensure_owner, ensure_staff

logger = logging.getLogger(__name__)


class CouponService:
    """Coupon catalogue managed by business owners"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.coupon_repo = CouponRepository(db)
        self.business_repo = BusinessRepository(db)

    def create_coupon(self, principal: Principal, request: CouponCreateRequest) -> CouponItem:
        business_id = ensure_owner(principal, "Only business owners can create coupons")
        if self.business_repo.get(business_id) is None:
            raise NotFoundError("Business not found")

        try:
            coupon = self.coupon_repo.create(
                business_id=business_id,
                name=request.name,
                description=request.description,
                points_required=request.points_required,
                image_url=request.image_url,
                is_active=True,
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create coupon for {business_id}: {str(e)}")
            raise InternalServerError("Error creating coupon")

        logger.info(f"Coupon {coupon.id} created for business {business_id}")
        return CouponItem.model_validate(coupon)

    def list_owner_coupons(self, principal: Principal) -> CouponListResponse:
        """Every coupon of the caller's business, inactive ones included"""
        business_id = ensure_staff(principal, "Only staff members can list business coupons")
        coupons = self.coupon_repo.list_by_business(business_id)
        return CouponListResponse(coupons=coupons, total_count=len(coupons))

    def list_business_coupons(
        self, business_id: str, active_only: bool = True
    ) -> CouponListResponse:
        """Coupons customers can work toward"""
        if self.business_repo.get(business_id) is None:
            raise NotFoundError("Business not found")
        coupons = self.coupon_repo.list_by_business(business_id, active_only=active_only)
        return CouponListResponse(coupons=coupons, total_count=len(coupons))

    def deactivate_coupon(self, principal: Principal, coupon_id: str) -> CouponDeactivateResponse:
        business_id = ensure_owner(principal, "Only business owners can delete coupons")
        if self.coupon_repo.get_for_business(coupon_id, business_id) is None:
            raise NotFoundError("Coupon not found or not associated with this business")

        try:
            self.coupon_repo.deactivate(coupon_id, business_id)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to deactivate coupon {coupon_id}: {str(e)}")
            raise InternalServerError("Error deleting coupon")

        logger.info(f"Coupon {coupon_id} deactivated by {principal.user_id}")
        return CouponDeactivateResponse(deactivated_coupon_id=coupon_id)
