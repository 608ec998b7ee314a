import pytest

from loyaltyapi.schemas.auth import UserRole

API = "/api/v1"


@pytest.fixture
def owner_headers(auth_headers, points_business):
    return auth_headers("owner-1", UserRole.OWNER, points_business.id)


class TestCouponRoutes:
    def test_create_list_and_deactivate(self, client, owner_headers):
        created = client.post(
            f"{API}/dashboard/coupons",
            json={"name": "Free latte", "pointsRequired": 80, "description": "Any size"},
            headers=owner_headers,
        )
        assert created.status_code == 201
        coupon = created.json()
        assert coupon["pointsRequired"] == 80
        assert coupon["isActive"] is True

        listed = client.get(f"{API}/dashboard/coupons", headers=owner_headers).json()
        assert listed["totalCount"] == 1

        deleted = client.delete(f"{API}/dashboard/coupons/{coupon['id']}", headers=owner_headers)
        assert deleted.status_code == 200
        assert deleted.json()["deactivatedCouponId"] == coupon["id"]

        listed = client.get(f"{API}/dashboard/coupons", headers=owner_headers).json()
        assert listed["coupons"][0]["isActive"] is False

    def test_staff_cannot_create(self, client, auth_headers, points_business):
        staff_headers = auth_headers("staff-1", UserRole.STAFF, points_business.id)

        response = client.post(
            f"{API}/dashboard/coupons",
            json={"name": "Free latte", "pointsRequired": 80},
            headers=staff_headers,
        )

        assert response.status_code == 403

    def test_rejects_non_positive_threshold(self, client, owner_headers):
        response = client.post(
            f"{API}/dashboard/coupons",
            json={"name": "Free latte", "pointsRequired": 0},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json()["details"]["errors"]

    def test_rejects_threshold_beyond_storage_range(self, client, owner_headers):
        response = client.post(
            f"{API}/dashboard/coupons",
            json={"name": "Free latte", "pointsRequired": 2**40},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_001"

    def test_unknown_coupon(self, client, owner_headers):
        response = client.delete(f"{API}/dashboard/coupons/missing", headers=owner_headers)

        assert response.status_code == 404


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
