from functools import lru_cache
from typing import List, Optional
from urllib.parse import quote_plus

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="loyaltyapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Loyalty Ledger API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = "postgres"
    POSTGRES_SCHEMA: str = "public"

    # Explicit URL wins over the POSTGRES_* parts (sqlite for local runs)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Identity provider
    AUTH_ISSUER_URL: str = ""
    AUTH_JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_AUDIENCE: Optional[str] = "authenticated"
    AUTH_CLAIMS_NAMESPACE: str = "app_metadata"  # holds {role, business_id}
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    @property
    def auth_issuer(self) -> Optional[str]:
        if not self.AUTH_ISSUER_URL:
            return None
        return f"{self.AUTH_ISSUER_URL.rstrip('/')}/auth/v1"

    # Ledger policy
    QR_CODE_TOKEN_BYTES: int = 24
    COUPON_VERIFY_WINDOW_MINUTES: int = 0  # 0 = redemptions never expire
    ACTION_HISTORY_MAX_LIMIT: int = 100

    # CORS
    ALLOWED_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
