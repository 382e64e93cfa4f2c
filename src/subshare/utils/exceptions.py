"""
Custom exceptions for SubShare.

Every business failure raised by the services is a SubShareError subclass with
a stable error code and the HTTP status the API layer answers with.
"""

from typing import Optional, Dict, Any


class SubShareError(Exception):
    """Base exception for all SubShare errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception with message and optional details.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Structured body returned to API callers."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(SubShareError):
    """Raised when configuration is invalid or missing."""
    code = "CONFIGURATION_ERROR"


class AuthenticationError(SubShareError):
    """Raised when authentication fails."""
    code = "UNAUTHORIZED"
    status_code = 401


class NotFoundError(SubShareError):
    """Raised when a requested entity does not exist."""
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any = None, message: Optional[str] = None):
        details = {"entity": entity}
        if entity_id is not None:
            details["id"] = entity_id
        super().__init__(message or f"{entity} not found", details)
        self.entity = entity
        self.entity_id = entity_id


class UserNotFoundError(NotFoundError):
    """Raised when a ledger operation targets a missing user."""

    def __init__(self, user_id: Any):
        super().__init__("User", user_id)


class ForbiddenError(SubShareError):
    """Raised when the caller does not own or may not touch an entity."""
    code = "FORBIDDEN"
    status_code = 403


class AccessDeniedError(ForbiddenError):
    """Raised when credentials are requested without an active grant."""
    code = "ACCESS_DENIED"


class ValidationFailedError(SubShareError):
    """Raised when input is malformed or out of the accepted range."""
    code = "VALIDATION_FAILED"
    status_code = 400


class InvalidStateError(SubShareError):
    """Raised when an operation is not legal for the entity's lifecycle state."""
    code = "INVALID_STATE"
    status_code = 400


class InsufficientBalanceError(SubShareError):
    """Raised when a debit exceeds the current wallet balance."""
    code = "INSUFFICIENT_BALANCE"
    status_code = 400

    def __init__(self, user_id: Any, balance: Any, required: Any):
        super().__init__(
            "Insufficient balance",
            {"user_id": user_id, "balance": str(balance), "required": str(required)},
        )


class AlreadyActiveError(SubShareError):
    """Raised when the buyer already holds an active grant for the subscription."""
    code = "ALREADY_ACTIVE"
    status_code = 400


class SelfPurchaseForbiddenError(SubShareError):
    """Raised when an owner tries to buy access to their own subscription."""
    code = "SELF_PURCHASE_FORBIDDEN"
    status_code = 400


class NotVerifiedError(SubShareError):
    """Raised when unlocking a subscription an admin has not verified."""
    code = "NOT_VERIFIED"
    status_code = 400


class SubscriptionInactiveError(SubShareError):
    """Raised when unlocking a deactivated or expired subscription."""
    code = "SUBSCRIPTION_INACTIVE"
    status_code = 400


class ConflictError(SubShareError):
    """Raised on duplicate unique keys (transaction ids, platform names, emails)."""
    code = "CONFLICT"
    status_code = 409
