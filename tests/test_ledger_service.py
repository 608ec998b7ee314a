import pytest
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from loyaltyapi.core.exceptions import (
    AuthorizationError,
    CodeAlreadyUsedError,
    CouponInactiveError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from loyaltyapi.models.coupon import RedeemedCoupon
from loyaltyapi.models.points import PointAward
from loyaltyapi.models.redemption_code import RedemptionCode
from loyaltyapi.models.staff_action import StaffAction, StaffActionType
from loyaltyapi.repositories.points_repository import PointsRepository
from loyaltyapi.schemas.auth import Principal, UserRole
from loyaltyapi.schemas.points import HistoryType
from loyaltyapi.services.code_issuer_service import CodeIssuerService
from loyaltyapi.services.ledger_service import LedgerService


@pytest.fixture
def ledger(db, settings):
    return LedgerService(db, settings)


@pytest.fixture
def issue_code(db, settings):
    issuer = CodeIssuerService(db, settings)

    def _issue(principal):
        return issuer.issue_or_fetch_code(principal).data

    return _issue


@pytest.fixture
def stamp_staff(stamp_business):
    return Principal(user_id="stamp-staff", role=UserRole.STAFF, business_id=stamp_business.id)


def _balance(db, user_id, business_id):
    return PointsRepository(db).get_total_points(user_id, business_id)


def _code_used(db, payload):
    return db.query(RedemptionCode.used).filter(RedemptionCode.payload == payload).scalar()


class TestAwardPoints:
    def test_award_scenario(self, ledger, issue_code, customer, staff, points_business, db):
        c1 = issue_code(customer)
        result = ledger.award_points(staff, c1, 50)
        assert result.total_points == 50
        assert result.user_id == customer.user_id
        assert result.awarded_points == 50

        with pytest.raises(CodeAlreadyUsedError) as exc_info:
            ledger.award_points(staff, c1, 50)
        assert exc_info.value.message == "Invalid or already used code"
        assert _balance(db, customer.user_id, points_business.id) == 50

        c2 = issue_code(customer)
        assert c2 != c1
        result = ledger.award_points(staff, c2, 30)
        assert result.total_points == 80
        assert _balance(db, customer.user_id, points_business.id) == 80

    def test_unknown_code_is_rejected(self, ledger, staff):
        with pytest.raises(CodeAlreadyUsedError):
            ledger.award_points(staff, "not-a-real-code", 10)

    @pytest.mark.parametrize("amount", [0, -5, 2.5, True, "10", None, 2**31, 2**63])
    def test_invalid_amount_leaves_code_unused(self, ledger, issue_code, customer, staff, amount, db):
        code = issue_code(customer)

        with pytest.raises(ValidationError):
            ledger.award_points(staff, code, amount)

        assert _code_used(db, code) is False

    def test_empty_code_is_invalid_input(self, ledger, staff):
        with pytest.raises(ValidationError):
            ledger.award_points(staff, "   ", 10)

    def test_customer_cannot_award(self, ledger, issue_code, customer, db):
        code = issue_code(customer)

        with pytest.raises(AuthorizationError):
            ledger.award_points(customer, code, 10)

        assert _code_used(db, code) is False

    def test_staff_cannot_award_for_other_business(
        self, ledger, issue_code, customer, staff, stamp_business, db
    ):
        code = issue_code(customer)

        with pytest.raises(AuthorizationError):
            ledger.award_points(staff, code, 10, business_id=stamp_business.id)

        assert _code_used(db, code) is False

    def test_staff_without_business_is_forbidden(self, ledger, issue_code, customer):
        code = issue_code(customer)
        unbound = Principal(user_id="staff-x", role=UserRole.STAFF)

        with pytest.raises(AuthorizationError):
            ledger.award_points(unbound, code, 10)

    def test_award_records_history_and_audit(self, ledger, issue_code, customer, staff, db):
        code = issue_code(customer)
        ledger.award_points(staff, code, 25)

        award = db.query(PointAward).filter(PointAward.user_id == customer.user_id).one()
        assert award.points == 25
        assert award.awarded_by == staff.user_id
        assert award.code_id is not None

        action = db.query(StaffAction).one()
        assert action.action_type == StaffActionType.AWARD_POINTS
        assert action.staff_user_id == staff.user_id
        assert action.action_details["recipient_user_id"] == customer.user_id
        assert action.action_details["points"] == 25
        assert action.action_details["coupon_name"] is None

    def test_audit_failure_does_not_undo_award(
        self, ledger, issue_code, customer, staff, points_business, db
    ):
        code = issue_code(customer)

        with patch.object(
            ledger.action_log.action_repo, "append", side_effect=SQLAlchemyError("audit down")
        ):
            result = ledger.award_points(staff, code, 40)

        assert result.total_points == 40
        assert _balance(db, customer.user_id, points_business.id) == 40
        assert _code_used(db, code) is True
        assert db.query(StaffAction).count() == 0


class TestCouponSpecificAward:
    def test_stamps_go_to_the_coupon_counter(
        self, ledger, issue_code, customer, stamp_staff, stamp_business, make_coupon, db
    ):
        ramen = make_coupon(stamp_business, points_required=10, name="10th ramen free")
        result = ledger.award_points(stamp_staff, issue_code(customer), 3, coupon_id=ramen.id)

        assert result.coupon_id == ramen.id
        assert result.total_points == 3
        repo = PointsRepository(db)
        assert repo.get_coupon_points(customer.user_id, stamp_business.id, ramen.id) == 3
        assert repo.get_total_points(customer.user_id, stamp_business.id) == 0
        assert db.query(StaffAction).one().action_details["coupon_name"] == "10th ramen free"

    def test_each_coupon_has_its_own_counter(
        self, ledger, issue_code, customer, stamp_staff, stamp_business, make_coupon, db
    ):
        ramen = make_coupon(stamp_business, points_required=10, name="Ramen")
        dumplings = make_coupon(stamp_business, points_required=5, name="Dumplings")

        ledger.award_points(stamp_staff, issue_code(customer), 4, coupon_id=ramen.id)
        ledger.award_points(stamp_staff, issue_code(customer), 2, coupon_id=dumplings.id)

        repo = PointsRepository(db)
        assert repo.get_coupon_points(customer.user_id, stamp_business.id, ramen.id) == 4
        assert repo.get_coupon_points(customer.user_id, stamp_business.id, dumplings.id) == 2

    def test_coupon_required(self, ledger, issue_code, customer, stamp_staff, db):
        code = issue_code(customer)

        with pytest.raises(ValidationError):
            ledger.award_points(stamp_staff, code, 3)

        assert _code_used(db, code) is False

    def test_coupon_of_other_business_not_found(
        self, ledger, issue_code, customer, stamp_staff, points_business, make_coupon
    ):
        foreign = make_coupon(points_business, points_required=10)

        with pytest.raises(NotFoundError):
            ledger.award_points(stamp_staff, issue_code(customer), 3, coupon_id=foreign.id)

    def test_inactive_coupon_rejected(
        self, ledger, issue_code, customer, stamp_staff, stamp_business, make_coupon, db
    ):
        retired = make_coupon(stamp_business, points_required=10, is_active=False)
        code = issue_code(customer)

        with pytest.raises(CouponInactiveError):
            ledger.award_points(stamp_staff, code, 3, coupon_id=retired.id)

        assert _code_used(db, code) is False

    def test_points_business_rejects_coupon_id(
        self, ledger, issue_code, customer, staff, points_business, make_coupon
    ):
        coupon = make_coupon(points_business)

        with pytest.raises(ValidationError):
            ledger.award_points(staff, issue_code(customer), 3, coupon_id=coupon.id)


class TestRedeemCoupon:
    def test_redemption_scenario(
        self, ledger, issue_code, customer, staff, points_business, make_coupon, db
    ):
        coupon = make_coupon(points_business, points_required=100)
        ledger.award_points(staff, issue_code(customer), 80)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            ledger.redeem_coupon(customer, coupon.id)
        assert exc_info.value.details["current_points"] == 80
        assert _balance(db, customer.user_id, points_business.id) == 80
        assert db.query(RedeemedCoupon).count() == 0

        ledger.award_points(staff, issue_code(customer), 20)
        result = ledger.redeem_coupon(customer, coupon.id)

        assert result.remaining_points == 0
        assert result.redemption.verified is False
        assert result.redemption.points_spent == 100
        assert _balance(db, customer.user_id, points_business.id) == 0
        assert db.query(RedeemedCoupon).count() == 1

    def test_balance_never_goes_negative(
        self, ledger, issue_code, customer, staff, points_business, make_coupon, db
    ):
        coupon = make_coupon(points_business, points_required=30)
        ledger.award_points(staff, issue_code(customer), 50)

        ledger.redeem_coupon(customer, coupon.id)
        with pytest.raises(InsufficientBalanceError):
            ledger.redeem_coupon(customer, coupon.id)

        assert _balance(db, customer.user_id, points_business.id) == 20

    def test_redeem_without_any_balance(self, ledger, customer, points_business, make_coupon):
        coupon = make_coupon(points_business, points_required=10)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            ledger.redeem_coupon(customer, coupon.id)

        assert exc_info.value.details["current_points"] == 0

    def test_stamp_coupon_spends_its_own_counter(
        self, ledger, issue_code, customer, stamp_staff, stamp_business, make_coupon, db
    ):
        ramen = make_coupon(stamp_business, points_required=10, name="Ramen")
        dumplings = make_coupon(stamp_business, points_required=5, name="Dumplings")
        ledger.award_points(stamp_staff, issue_code(customer), 10, coupon_id=ramen.id)

        with pytest.raises(InsufficientBalanceError):
            ledger.redeem_coupon(customer, dumplings.id)

        result = ledger.redeem_coupon(customer, ramen.id)
        assert result.remaining_points == 0

    def test_unknown_coupon(self, ledger, customer):
        with pytest.raises(NotFoundError):
            ledger.redeem_coupon(customer, "missing")

    def test_inactive_coupon(self, ledger, customer, points_business, make_coupon):
        coupon = make_coupon(points_business, is_active=False)

        with pytest.raises(CouponInactiveError):
            ledger.redeem_coupon(customer, coupon.id)

    def test_staff_cannot_redeem(self, ledger, staff, points_business, make_coupon):
        coupon = make_coupon(points_business)

        with pytest.raises(AuthorizationError):
            ledger.redeem_coupon(staff, coupon.id)


class TestLedgerReads:
    def test_businesses_with_points(self, ledger, issue_code, customer, staff, points_business):
        ledger.award_points(staff, issue_code(customer), 15)

        result = ledger.get_user_businesses_with_points(customer)

        assert len(result.businesses) == 1
        assert result.businesses[0].id == points_business.id
        assert result.businesses[0].points == 15

    def test_coupon_points(
        self, ledger, issue_code, customer, stamp_staff, stamp_business, make_coupon
    ):
        ramen = make_coupon(stamp_business, points_required=10, name="Ramen")
        ledger.award_points(stamp_staff, issue_code(customer), 6, coupon_id=ramen.id)

        result = ledger.get_coupon_points(customer, stamp_business.id)

        assert result.business_id == stamp_business.id
        assert [(c.coupon_id, c.points, c.points_required) for c in result.coupon_points] == [
            (ramen.id, 6, 10)
        ]

    def test_coupon_points_unknown_business(self, ledger, customer):
        with pytest.raises(NotFoundError):
            ledger.get_coupon_points(customer, "missing")

    def test_history_newest_first(
        self, ledger, issue_code, customer, staff, points_business, make_coupon
    ):
        coupon = make_coupon(points_business, points_required=10)
        ledger.award_points(staff, issue_code(customer), 10)
        ledger.redeem_coupon(customer, coupon.id)

        history = ledger.get_user_history(customer).history

        assert [item.type for item in history] == [
            HistoryType.COUPON_REDEEMED,
            HistoryType.POINTS_AWARDED,
        ]
        assert history[0].coupon_name == coupon.name
        assert history[1].business_name == points_business.name

    def test_redeemed_coupon_is_private(
        self, ledger, issue_code, customer, staff, points_business, make_coupon
    ):
        coupon = make_coupon(points_business, points_required=10)
        ledger.award_points(staff, issue_code(customer), 10)
        redemption = ledger.redeem_coupon(customer, coupon.id).redemption

        detail = ledger.get_redeemed_coupon(customer, redemption.id)
        assert detail.coupon.id == coupon.id

        stranger = Principal(user_id="someone-else", role=UserRole.CLIENT)
        with pytest.raises(NotFoundError):
            ledger.get_redeemed_coupon(stranger, redemption.id)


class TestEraseUserData:
    def test_removes_all_customer_rows(
        self, ledger, issue_code, customer, staff, points_business, make_coupon, db
    ):
        coupon = make_coupon(points_business, points_required=10)
        ledger.award_points(staff, issue_code(customer), 10)
        ledger.redeem_coupon(customer, coupon.id)
        issue_code(customer)

        result = ledger.erase_user_data(customer)

        assert result.deleted_rows > 0
        assert _balance(db, customer.user_id, points_business.id) == 0
        assert db.query(PointAward).count() == 0
        assert db.query(RedeemedCoupon).count() == 0
        assert db.query(RedemptionCode).count() == 0
        # audit trail is kept
        assert db.query(StaffAction).count() == 1

    def test_staff_cannot_erase(self, ledger, staff):
        with pytest.raises(AuthorizationError):
            ledger.erase_user_data(staff)
