"""
Sleeping Backend: Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for the different failure classes.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the matching status code.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    SleepingError (base)
    ├── ValidationError            → 400 Bad Request
    ├── AuthenticationError        → 401 Unauthorized
    ├── PermissionDeniedError      → 403 Forbidden
    ├── NotFoundError              → 404 Not Found
    ├── BusinessRuleError          → 400 Bad Request (code per rule)
    │   ├── InsufficientBalanceError   insufficient_balance
    │   ├── AlreadyOwnedError          already_owned
    │   ├── BlockedError               blocked
    │   └── DuplicateCredentialError   duplicate_credential (409)
    ├── MediaUploadError           → 502 Bad Gateway
    ├── DatabaseError              → 500 Internal Server Error
    └── RateLimitExceededError     → 429 Too Many Requests

The message is safe to return to clients; the context is for server logs.
"""

from typing import Any, Dict, Optional


class SleepingError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where a handler says so)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SleepingError):
    """
    Raised when client input fails a business-level validation.

    When:    Missing upload, bad XP amount, self-follow, unowned aura color.
    HTTP:    400 Bad Request (schema-level failures stay FastAPI's 422)
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(SleepingError):
    """Missing, invalid or expired credentials. HTTP 401."""

    def __init__(
        self,
        message: str = "Invalid credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(SleepingError):
    """Authenticated, but the account's role does not allow the action. HTTP 403."""

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(SleepingError):
    """
    Raised when a referenced resource does not exist.

    What:    Account, shop item, post or event absent.
    HTTP:    404 Not Found
    """

    code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)
        self.resource = resource


class BusinessRuleError(SleepingError):
    """
    Base for business-rule violations.

    Subclasses set `code` (the machine-readable error returned to clients)
    and `status_code`.
    """

    code = "business_rule_violation"
    status_code = 400


class InsufficientBalanceError(BusinessRuleError):
    """The account cannot afford the item. Nothing was debited or granted."""

    code = "insufficient_balance"

    def __init__(
        self,
        balance: int,
        price: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update(balance=balance, price=price)
        super().__init__(
            message=f"Insufficient balance: item costs {price}, you have {balance}.",
            context=ctx,
        )
        self.balance = balance
        self.price = price


class AlreadyOwnedError(BusinessRuleError):
    """The account already owns the item; repeat purchases are rejected."""

    code = "already_owned"

    def __init__(self, item_id: int, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["item_id"] = item_id
        super().__init__(message="You already own this item.", context=ctx)
        self.item_id = item_id


class BlockedError(BusinessRuleError):
    """A block edge exists between the two accounts."""

    code = "blocked"

    def __init__(
        self,
        message: str = "This interaction is not allowed because one of the accounts blocked the other.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DuplicateCredentialError(BusinessRuleError):
    """Registration with a username or email that is already taken."""

    code = "duplicate_credential"
    status_code = 409

    def __init__(self, field: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["field"] = field
        super().__init__(message=f"An account with this {field} already exists.", context=ctx)
        self.field = field


class MediaUploadError(SleepingError):
    """
    Raised when the media storage backend rejects or fails an upload.

    HTTP:    502 Bad Gateway (the upstream CDN failed, not the client)
    """

    def __init__(
        self,
        message: str = "Media upload failed. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(SleepingError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; detailed error info
    is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(SleepingError):
    """Raised when a client exceeds the per-IP request rate limit. HTTP 429."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
