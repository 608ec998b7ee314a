from loyaltyapi.core.exceptions import AuthorizationError
from loyaltyapi.schemas.auth import Principal


def ensure_client(principal: Principal, message: str = "Only customers can perform this action") -> None:
    if not principal.is_client:
        raise AuthorizationError(message)


def ensure_staff(principal: Principal, message: str = "Only staff members can perform this action") -> str:
    """Staff or owner bound to a business; returns that business id"""
    if not principal.is_staff_or_owner:
        raise AuthorizationError(message)
    if not principal.business_id:
        raise AuthorizationError("Staff account is not associated with a business")
    return principal.business_id


def ensure_owner(principal: Principal, message: str = "Only business owners can perform this action") -> str:
    business_id = ensure_staff(principal, message)
    if not principal.is_owner:
        raise AuthorizationError(message)
    return business_id
