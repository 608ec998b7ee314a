import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text

from loyaltyapi.config import settings
from loyaltyapi.database.connection import engine
from loyaltyapi.models.base import Base

# register every table on Base.metadata
from loyaltyapi.models import business, coupon, points, redemption_code, staff_action  # noqa: F401


def init_db():
    """Create the schema (PostgreSQL) and all ledger tables"""
    try:
        if engine.dialect.name == "postgresql":
            with engine.connect() as conn:
                conn.execute(
                    text(f"CREATE SCHEMA IF NOT EXISTS {settings.POSTGRES_SCHEMA}")
                )
                conn.commit()

        Base.metadata.create_all(bind=engine)
        print(f"Database initialized successfully ({engine.url.render_as_string(hide_password=True)})")

    except Exception as e:
        print(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    init_db()
