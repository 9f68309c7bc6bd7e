"""
Base exception classes for application-wide error handling.

Every domain error raised by the service layer derives from
BaseApplicationError so views can translate it into a consistent JSON body
without knowing the concrete failure.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input or business rule validation failures
    ├── NotFoundError - Resource not found
    ├── ConflictError - State conflicts (sold out, concurrent modifications)
    ├── ConfigurationError - Missing setup required to complete an operation
    └── ExternalServiceError - Third-party service failures

Usage:
    from core.exceptions import ValidationError, NotFoundError

    raise NotFoundError("Event not found", error_code="EVENT_NOT_FOUND")

    try:
        CheckoutService.create_checkout_session(...)
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=400)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (tier ids, quantities, etc.)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Returns:
            Dict with error, error_code, and (when present) details keys

        Example:
            {
                "error": "Only 2 tickets remaining for General Admission",
                "error_code": "INSUFFICIENT_INVENTORY",
                "details": {"tier_id": "...", "remaining": 2}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for service-layer rules that serializers cannot express, such as
    purchase limits or sales windows. Field-format validation stays in DRF
    serializers.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Use for single-resource lookups where existence is expected.
    """

    default_error_code: str = "NOT_FOUND"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Example:
        if tier.remaining_quantity < quantity:
            raise ConflictError(
                "Not enough tickets remaining",
                error_code="INSUFFICIENT_INVENTORY",
                details={"remaining": tier.remaining_quantity}
            )
    """

    default_error_code: str = "CONFLICT"


class ConfigurationError(BaseApplicationError):
    """
    Raised when required setup is missing for an otherwise valid request.

    Example: an organizer who has not finished payout onboarding cannot
    receive ticket sales.
    """

    default_error_code: str = "CONFIGURATION_ERROR"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Note:
        Log the original error for debugging but don't expose
        internal details to clients in production.
        HTTP 502 Bad Gateway is the appropriate status.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
