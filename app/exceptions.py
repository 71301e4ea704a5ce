"""
Custom Exception Classes for Studio Galleries

This module defines the exceptions raised by the service layer. Each one
carries an HTTP status and a machine-readable error code so the boundary
can produce a consistent error envelope (see app.exception_handlers).
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in the `error_code` field."""

    # Authentication / authorization
    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_FAILED = "AUTH_FAILED"
    AUTH_INVALID_TOKEN = "AUTH_INVALID_TOKEN"
    AUTH_TENANT_MISSING = "AUTH_TENANT_MISSING"
    AUTH_PERMISSION_DENIED = "AUTH_PERMISSION_DENIED"
    FEATURE_NOT_AVAILABLE = "FEATURE_NOT_AVAILABLE"
    TIER_LIMIT_EXCEEDED = "TIER_LIMIT_EXCEEDED"

    # Validation
    VALIDATION_FAILED = "VALIDATION_FAILED"
    VALIDATION_INVALID_TRANSITION = "VALIDATION_INVALID_TRANSITION"

    # Resources
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_TENANT_NOT_FOUND = "RESOURCE_TENANT_NOT_FOUND"
    RESOURCE_GALLERY_NOT_FOUND = "RESOURCE_GALLERY_NOT_FOUND"
    RESOURCE_PHOTO_NOT_FOUND = "RESOURCE_PHOTO_NOT_FOUND"
    RESOURCE_ORDER_NOT_FOUND = "RESOURCE_ORDER_NOT_FOUND"
    RESOURCE_PRODUCT_NOT_FOUND = "RESOURCE_PRODUCT_NOT_FOUND"

    # Conflicts
    CONFLICT_DUPLICATE_RESOURCE = "CONFLICT_DUPLICATE_RESOURCE"
    CONFLICT_CODE_GENERATION_EXHAUSTED = "CONFLICT_CODE_GENERATION_EXHAUSTED"
    CONFLICT_PAYMENT_MISMATCH = "CONFLICT_PAYMENT_MISMATCH"

    # Media / integrations
    MEDIA_DECODE_FAILED = "MEDIA_DECODE_FAILED"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    PAYMENT_PROVIDER_ERROR = "PAYMENT_PROVIDER_ERROR"
    WEBHOOK_SIGNATURE_INVALID = "WEBHOOK_SIGNATURE_INVALID"

    # Throttling
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Generic
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class StudioError(Exception):
    """Base exception class for all application errors"""

    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        if error_code is not None:
            self.error_code = error_code
        super().__init__(self.message)


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(StudioError):
    """Raised when no valid session is present"""

    error_code = ErrorCode.AUTH_REQUIRED

    def __init__(self, message: str = "Authentication required", details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED, details=details)


class InvalidCredentialsError(AuthenticationError):
    """Raised when login credentials are invalid"""

    error_code = ErrorCode.AUTH_FAILED

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message=message)


class InvalidTokenError(AuthenticationError):
    """Raised when a bearer token cannot be decoded"""

    error_code = ErrorCode.AUTH_INVALID_TOKEN

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message=message)


class TenantMissingError(StudioError):
    """Raised when a session exists but is not bound to a tenant"""

    error_code = ErrorCode.AUTH_TENANT_MISSING

    def __init__(self, message: str = "Tenant not configured for this session"):
        super().__init__(message=message, status_code=status.HTTP_412_PRECONDITION_FAILED)


class AuthorizationError(StudioError):
    """Raised when the session role is below the required role"""

    error_code = ErrorCode.AUTH_PERMISSION_DENIED

    def __init__(
        self, message: str = "You do not have permission to perform this action", required_role: str | None = None
    ):
        details = {"required_role": required_role} if required_role else {}
        super().__init__(message=message, status_code=status.HTTP_403_FORBIDDEN, details=details)


class FeatureNotAvailableError(StudioError):
    """Raised when the tenant's tier (or override) does not include a feature"""

    error_code = ErrorCode.FEATURE_NOT_AVAILABLE

    def __init__(self, feature: str):
        super().__init__(
            message=f"Feature '{feature}' is not available for this studio",
            status_code=status.HTTP_403_FORBIDDEN,
            details={"feature": feature},
        )


class TierLimitExceededError(StudioError):
    """Raised when a tier quota (galleries, storage, orders) is used up"""

    error_code = ErrorCode.TIER_LIMIT_EXCEEDED

    def __init__(self, limit: str, maximum: int):
        super().__init__(
            message=f"Tier limit reached for {limit} (maximum {maximum})",
            status_code=status.HTTP_403_FORBIDDEN,
            details={"limit": limit, "maximum": maximum},
        )


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(StudioError):
    """Base class for resource not found errors"""

    error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class TenantNotFoundError(ResourceNotFoundError):
    error_code = ErrorCode.RESOURCE_TENANT_NOT_FOUND

    def __init__(self, tenant_id: Any | None = None):
        super().__init__(resource_type="Tenant", resource_id=tenant_id)


class GalleryNotFoundError(ResourceNotFoundError):
    error_code = ErrorCode.RESOURCE_GALLERY_NOT_FOUND

    def __init__(self, gallery_id: Any | None = None):
        super().__init__(resource_type="Gallery", resource_id=gallery_id)


class PhotoNotFoundError(ResourceNotFoundError):
    error_code = ErrorCode.RESOURCE_PHOTO_NOT_FOUND

    def __init__(self, photo_id: Any | None = None):
        super().__init__(resource_type="Photo", resource_id=photo_id)


class OrderNotFoundError(ResourceNotFoundError):
    error_code = ErrorCode.RESOURCE_ORDER_NOT_FOUND

    def __init__(self, order_id: Any | None = None):
        super().__init__(resource_type="Order", resource_id=order_id)


class ProductNotFoundError(ResourceNotFoundError):
    error_code = ErrorCode.RESOURCE_PRODUCT_NOT_FOUND

    def __init__(self, product_id: Any | None = None):
        super().__init__(resource_type="Product", resource_id=product_id)


# ============================================================================
# Validation & Conflict Exceptions
# ============================================================================


class ValidationError(StudioError):
    """Raised when input validation fails"""

    error_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=error_details)


class InvalidStatusTransitionError(StudioError):
    """Raised when an invalid status transition is attempted"""

    error_code = ErrorCode.VALIDATION_INVALID_TRANSITION

    def __init__(self, current_status: str, target_status: str, resource_type: str = "Resource"):
        super().__init__(
            message=f"Cannot transition {resource_type} from '{current_status}' to '{target_status}'",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource_type": resource_type, "current_status": current_status, "target_status": target_status},
        )


class DuplicateResourceError(StudioError):
    """Raised when attempting to create a duplicate resource"""

    error_code = ErrorCode.CONFLICT_DUPLICATE_RESOURCE

    def __init__(self, resource_type: str, field: str, value: Any):
        super().__init__(
            message=f"{resource_type} with {field} '{value}' already exists",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource_type": resource_type, "field": field, "value": value},
        )


class CodeGenerationExhaustedError(StudioError):
    """Raised when every gallery code attempt collided. Safe to retry."""

    error_code = ErrorCode.CONFLICT_CODE_GENERATION_EXHAUSTED

    def __init__(self, attempts: int):
        super().__init__(
            message="Could not generate a unique gallery code, please try again",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"attempts": attempts, "retryable": True},
        )


class PaymentMismatchError(StudioError):
    """Raised when a payment notification does not match the stored order"""

    error_code = ErrorCode.CONFLICT_PAYMENT_MISMATCH

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=status.HTTP_409_CONFLICT, details=details)


# ============================================================================
# Media & Integration Exceptions
# ============================================================================


class MediaDecodeError(StudioError):
    """Raised when an uploaded file is not a readable image"""

    error_code = ErrorCode.MEDIA_DECODE_FAILED

    def __init__(self, message: str = "File is not a readable image", filename: str | None = None):
        details = {"filename": filename} if filename else {}
        super().__init__(message=message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, details=details)


class StorageError(StudioError):
    """Raised when object storage rejects or fails an operation"""

    error_code = ErrorCode.STORAGE_UNAVAILABLE

    def __init__(self, message: str = "Object storage is unavailable", key: str | None = None):
        details = {"key": key} if key else {}
        super().__init__(message=message, status_code=status.HTTP_502_BAD_GATEWAY, details=details)


class PaymentProviderError(StudioError):
    """Raised when the payment provider is unconfigured or rejects a request"""

    error_code = ErrorCode.PAYMENT_PROVIDER_ERROR

    def __init__(self, message: str = "Payment provider is unavailable"):
        super().__init__(message=message, status_code=status.HTTP_502_BAD_GATEWAY)


class WebhookSignatureError(StudioError):
    """Raised when a webhook payload fails signature verification"""

    error_code = ErrorCode.WEBHOOK_SIGNATURE_INVALID

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST)


# ============================================================================
# Rate Limiting
# ============================================================================


class RateLimitExceededError(StudioError):
    """Raised when a per-identifier rate limit is exceeded"""

    error_code = ErrorCode.RATE_LIMIT_EXCEEDED

    def __init__(self, retry_after: int, message: str = "Too many requests. Please try again later."):
        self.retry_after = retry_after
        super().__init__(
            message=message,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"retry_after": retry_after},
        )
