from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from loyaltyapi.config import Settings, get_settings
from loyaltyapi.core.exceptions import AuthenticationError, AuthorizationError
from loyaltyapi.core.security import decode_principal
from loyaltyapi.schemas.auth import Principal

# JWT Bearer scheme; missing header is reported by get_current_principal
security = HTTPBearer(auto_error=False)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> Principal:
    """Required authentication - a valid bearer token"""
    if not credentials or not credentials.credentials:
        raise AuthenticationError("Missing or invalid Authorization header")

    return decode_principal(credentials.credentials, settings)


def require_client(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Customer-only endpoints"""
    if not principal.is_client:
        raise AuthorizationError("Access denied. Only clients can perform this action.")
    return principal


def require_staff(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Staff or owner bound to a business"""
    if not principal.is_staff_or_owner:
        raise AuthorizationError("Access denied. Only staff members can perform this action.")
    if not principal.business_id:
        raise AuthorizationError("Access denied. No business is associated with this account.")
    return principal


def require_owner(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Business owner only"""
    if not principal.is_owner:
        raise AuthorizationError("Access denied. Only owners can perform this action.")
    if not principal.business_id:
        raise AuthorizationError("Access denied. No business is associated with this account.")
    return principal
