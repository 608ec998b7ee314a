from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from loyaltyapi.config import settings


def build_engine(database_url: str, echo: bool = False):
    if database_url.startswith("sqlite"):
        # timeout lets concurrent writers queue on the database lock
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,  # drop dead connections before use
        pool_recycle=3600,  # recycle hourly
        echo=echo,  # SQL echo in debug mode
        connect_args={"options": f"-csearch_path={settings.POSTGRES_SCHEMA}"},
    )


engine = build_engine(settings.database_url, echo=settings.DEBUG)

# Use expire_on_commit=False to avoid DetachedInstanceError when accessing
# attributes after commit within the same request scope (common FastAPI pattern).
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)
