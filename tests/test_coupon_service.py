import pytest
from pydantic import ValidationError as PydanticValidationError

from loyaltyapi.core.exceptions import AuthorizationError, NotFoundError
from loyaltyapi.schemas.coupon import CouponCreateRequest
from loyaltyapi.services.coupon_service import CouponService


@pytest.fixture
def coupon_service(db, settings):
    return CouponService(db, settings)


class TestCouponService:
    def test_owner_creates_coupon(self, coupon_service, owner, points_business):
        coupon = coupon_service.create_coupon(
            owner, CouponCreateRequest(name="  Free latte ", points_required=80)
        )

        assert coupon.business_id == points_business.id
        assert coupon.name == "Free latte"
        assert coupon.is_active is True

    def test_staff_cannot_create(self, coupon_service, staff):
        with pytest.raises(AuthorizationError):
            coupon_service.create_coupon(staff, CouponCreateRequest(name="x", points_required=1))

    @pytest.mark.parametrize(
        "payload",
        [{"name": "   ", "points_required": 10}, {"name": "Free tea", "points_required": 0}],
    )
    def test_invalid_definitions(self, payload):
        with pytest.raises(PydanticValidationError):
            CouponCreateRequest(**payload)

    def test_deactivate_hides_from_customers(self, coupon_service, owner, points_business, make_coupon):
        kept = make_coupon(points_business, points_required=10, name="Kept")
        retired = make_coupon(points_business, points_required=20, name="Retired")

        response = coupon_service.deactivate_coupon(owner, retired.id)

        assert response.deactivated_coupon_id == retired.id
        public = coupon_service.list_business_coupons(points_business.id)
        assert [c.id for c in public.coupons] == [kept.id]
        everything = coupon_service.list_owner_coupons(owner)
        assert everything.total_count == 2
        assert {c.id: c.is_active for c in everything.coupons} == {kept.id: True, retired.id: False}

    def test_deactivate_foreign_coupon(self, coupon_service, owner, stamp_business, make_coupon):
        foreign = make_coupon(stamp_business, points_required=5)

        with pytest.raises(NotFoundError):
            coupon_service.deactivate_coupon(owner, foreign.id)

    def test_list_unknown_business(self, coupon_service):
        with pytest.raises(NotFoundError):
            coupon_service.list_business_coupons("missing")
