from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError
from pydantic import BaseModel, ValidationError

from loyaltyapi.config import Settings
from loyaltyapi.core.exceptions import AuthenticationError
from loyaltyapi.schemas.auth import Principal, UserRole


class TokenPayload(BaseModel):
    sub: str  # identity provider user id
    email: Optional[str] = None


def create_access_token(
    settings: Settings,
    user_id: str,
    role: UserRole = UserRole.CLIENT,
    business_id: Optional[str] = None,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Mint a token shaped like the identity provider's (local tooling and tests)."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode: Dict[str, Any] = {
        "sub": user_id,
        "exp": expire,
        settings.AUTH_CLAIMS_NAMESPACE: {
            "role": role.value,
            "business_id": business_id,
        },
    }
    if email:
        to_encode["email"] = email
    if settings.AUTH_JWT_AUDIENCE:
        to_encode["aud"] = settings.AUTH_JWT_AUDIENCE
    if settings.auth_issuer:
        to_encode["iss"] = settings.auth_issuer
    return jwt.encode(to_encode, settings.AUTH_JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_principal(token: str, settings: Settings) -> Principal:
    """Verify a bearer token and build the principal from its claims.

    Role and business scope are read only from the token; the claims under
    ``AUTH_CLAIMS_NAMESPACE`` are trusted as-is.
    """
    if not settings.AUTH_JWT_SECRET:
        raise AuthenticationError("Authentication is not configured")

    options = {"verify_aud": bool(settings.AUTH_JWT_AUDIENCE)}
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE,
            issuer=settings.auth_issuer,
            options=options,
        )
        token_data = TokenPayload.model_validate(payload)
    except (JWTError, ValidationError):
        raise AuthenticationError("Invalid token")

    claims = payload.get(settings.AUTH_CLAIMS_NAMESPACE) or {}
    if not isinstance(claims, dict):
        raise AuthenticationError("Invalid token")

    try:
        role = UserRole.parse(claims.get("role"))
    except ValueError:
        raise AuthenticationError("Invalid token")

    return Principal(
        user_id=token_data.sub,
        email=token_data.email,
        role=role,
        business_id=claims.get("business_id") or None,
    )
