from fastapi import HTTPException, status
from typing import Optional, Dict, Any


def error_envelope(
    error_code: str, message: str, details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"status": "error", "code": error_code, "message": message}
    if details:
        body["details"] = details
    return body


class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail=error_envelope(error_code, message, self.details),
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message

class AuthenticationError(BaseAPIException):
    """Missing or invalid credential"""
    def __init__(self, message: str = "Not authenticated", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_001",
            message=message,
            details=details
        )

class AuthorizationError(BaseAPIException):
    """Valid principal without the required role or business scope"""
    def __init__(self, message: str = "Access forbidden", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="AUTH_002",
            message=message,
            details=details
        )

class ValidationError(BaseAPIException):
    """Invalid input, rejected before any mutation"""
    def __init__(self, message: str = "Validation failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VALIDATION_001",
            message=message,
            details=details
        )

class NotFoundError(BaseAPIException):
    """Resource not found errors"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND_001",
            message=message,
            details=details
        )

class ConflictError(BaseAPIException):
    """Expected business outcome: the unit of value is not (or no longer) claimable"""
    def __init__(
        self,
        message: str = "Resource conflict",
        details: Optional[Dict] = None,
        error_code: str = "CONFLICT_001",
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=error_code,
            message=message,
            details=details
        )

class CodeAlreadyUsedError(ConflictError):
    def __init__(self, message: str = "Invalid or already used code", details: Optional[Dict] = None):
        super().__init__(message=message, details=details, error_code="CODE_USED")

class CouponAlreadyVerifiedError(ConflictError):
    def __init__(self, message: str = "This coupon has already been verified", details: Optional[Dict] = None):
        super().__init__(message=message, details=details, error_code="COUPON_VERIFIED")

class CouponVerificationExpiredError(ConflictError):
    def __init__(self, message: str = "This coupon redemption has expired", details: Optional[Dict] = None):
        super().__init__(message=message, details=details, error_code="COUPON_EXPIRED")

class CouponInactiveError(ConflictError):
    def __init__(self, message: str = "This coupon is no longer available", details: Optional[Dict] = None):
        super().__init__(message=message, details=details, error_code="COUPON_INACTIVE")

class InsufficientBalanceError(ConflictError):
    def __init__(self, message: str = "Insufficient points to redeem this coupon", details: Optional[Dict] = None):
        super().__init__(message=message, details=details, error_code="BALANCE_001")

class ScanTargetMismatchError(ConflictError):
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message=message, details=details, error_code="SCAN_MISMATCH")

class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )
