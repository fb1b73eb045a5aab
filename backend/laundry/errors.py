"""Error hierarchy for the laundry backend.

All domain exceptions inherit from LaundryError. Each class carries the
HTTP status and the stable machine-readable code the web layer returns,
so clients can branch on ``code`` without parsing messages.
"""

from __future__ import annotations

from typing import ClassVar


class LaundryError(Exception):
    """Base exception for all laundry backend errors."""

    status_code: ClassVar[int] = 500
    code: ClassVar[str] = "INTERNAL_ERROR"
    default_message: ClassVar[str] = "An error occurred"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# --- Store ---


class NotFoundError(LaundryError):
    """Entity, session or token is absent."""

    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"

    def __init__(self, collection: str, entity_id: str) -> None:
        self.collection = collection
        self.entity_id = entity_id
        super().__init__(f"{collection} {entity_id} not found")


class DuplicateIdError(LaundryError):
    """create() collided with an existing id."""

    status_code = 409
    code = "DUPLICATE_ID"

    def __init__(self, collection: str, entity_id: str) -> None:
        self.collection = collection
        self.entity_id = entity_id
        super().__init__(f"{collection} already contains id {entity_id}")


class UniqueConstraintError(LaundryError):
    """A unique secondary key (e.g. user e-mail) would be duplicated."""

    status_code = 400
    code = "UNIQUE_CONSTRAINT"

    def __init__(self, collection: str, field: str, value: str) -> None:
        self.collection = collection
        self.field = field
        self.value = value
        super().__init__(f"{collection}.{field} must be unique")


class StorageCorruptError(LaundryError):
    """Backing data for a collection could not be parsed.

    Raised inside the store only; the store degrades to an empty
    collection instead of propagating it to callers.
    """

    code = "STORAGE_CORRUPT"

    def __init__(self, collection: str, reason: str) -> None:
        self.collection = collection
        self.reason = reason
        super().__init__(f"{collection} is corrupt: {reason}")


# --- Order lifecycle ---


class InvalidTransitionError(LaundryError):
    """Raised when an order status change is not the immediate successor."""

    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid transition: {from_status} -> {to_status}")


class LifecycleIntegrityError(LaundryError):
    """Status was updated but the audit record could not be appended."""

    code = "INTEGRITY_ERROR"
    default_message = "Order status and tracking history are inconsistent"


class OrderNotEditableError(LaundryError):
    """Line items can only change while the order is still ``received``."""

    status_code = 409
    code = "ORDER_NOT_EDITABLE"
    default_message = "Order can no longer be edited"


# --- Authentication / authorization ---


class UnauthorizedError(LaundryError):
    """No valid principal for a route that requires one."""

    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Not authenticated. Please login."


class InvalidCredentialsError(UnauthorizedError):
    """Login failed. Message is uniform for unknown user and wrong password."""

    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class AccountLockedError(LaundryError):
    """Too many failed logins; account temporarily locked."""

    status_code = 423
    code = "ACCOUNT_LOCKED"
    default_message = "Account temporarily locked. Try again later."


class ForbiddenError(LaundryError):
    """Valid principal, insufficient role or not the owner."""

    status_code = 403
    code = "FORBIDDEN"
    default_message = "Access denied"


class CSRFInvalidError(LaundryError):
    """CSRF token missing or not the one bound to the session."""

    status_code = 403
    code = "CSRF_INVALID"
    default_message = "Invalid CSRF token"


class CSRFExpiredError(LaundryError):
    """CSRF token matches the session but is past its expiry."""

    status_code = 403
    code = "CSRF_EXPIRED"
    default_message = "CSRF token expired"


class EmailTakenError(LaundryError):
    """Registration with an e-mail already in use."""

    status_code = 400
    code = "EMAIL_TAKEN"
    default_message = "User already exists with this email"


class ValidationFailedError(LaundryError):
    """Domain-level input validation failure (bad e-mail, short password)."""

    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid input"


# --- External services ---


class UpstreamUnavailableError(LaundryError):
    """External identity or asset service failed or timed out."""

    status_code = 503
    code = "UPSTREAM_UNAVAILABLE"
    default_message = "Upstream service unavailable"

