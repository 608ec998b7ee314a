import os

# settings are read once at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")

from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import loyaltyapi.repositories  # noqa: F401  registers every table
from loyaltyapi.config import Settings, get_settings
from loyaltyapi.core.security import create_access_token
from loyaltyapi.database.connection import build_engine
from loyaltyapi.database.session import get_db
from loyaltyapi.models.base import Base
from loyaltyapi.models.business import Business, LoyaltyType
from loyaltyapi.models.coupon import Coupon
from loyaltyapi.models.redemption_code import RedemptionCode
from loyaltyapi.schemas.auth import Principal, UserRole


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite://",
        AUTH_JWT_SECRET="test-secret",
        AUTH_ISSUER_URL="",
        COUPON_VERIFY_WINDOW_MINUTES=0,
    )


@pytest.fixture
def engine(tmp_path):
    """A real SQLite file per test, so conditional updates run as SQL"""
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def points_business(db):
    business = Business(name="Corner Coffee", loyalty_type=LoyaltyType.POINTS)
    db.add(business)
    db.commit()
    return business


@pytest.fixture
def stamp_business(db):
    business = Business(name="Noodle Bar", loyalty_type=LoyaltyType.COUPON_SPECIFIC)
    db.add(business)
    db.commit()
    return business


@pytest.fixture
def make_coupon(db):
    def _make(business, points_required=100, name="Free coffee", is_active=True):
        coupon = Coupon(
            business_id=business.id,
            name=name,
            points_required=points_required,
            is_active=is_active,
        )
        db.add(coupon)
        db.commit()
        return coupon

    return _make


@pytest.fixture
def make_code(db):
    """Insert an unused profile code directly"""

    def _make(user_id, payload):
        code = RedemptionCode(user_id=user_id, payload=payload, used=False)
        db.add(code)
        db.commit()
        return code

    return _make


@pytest.fixture
def customer():
    return Principal(user_id="customer-1", email="customer@example.com", role=UserRole.CLIENT)


@pytest.fixture
def staff(points_business):
    return Principal(user_id="staff-1", role=UserRole.STAFF, business_id=points_business.id)


@pytest.fixture
def owner(points_business):
    return Principal(user_id="owner-1", role=UserRole.OWNER, business_id=points_business.id)


@pytest.fixture
def run_concurrently(session_factory):
    """Run ``work(session)`` in parallel threads, one session per worker.

    Returns "ok" or the exception class name for each worker.
    """

    def _run(work, workers):
        def _one(_):
            session = session_factory()
            try:
                work(session)
                return "ok"
            except Exception as e:
                return type(e).__name__
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(_one, range(workers)))

    return _run


@pytest.fixture
def app(session_factory, settings):
    from loyaltyapi.main import create_app

    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_headers(settings):
    def _headers(user_id, role=UserRole.CLIENT, business_id=None):
        token = create_access_token(settings, user_id, role=role, business_id=business_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers
