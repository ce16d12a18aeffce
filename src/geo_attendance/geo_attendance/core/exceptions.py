class DomainError(Exception):
    """Base exception for business rule violations."""

    kind = "domain_error"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "validation_error"


class NotFoundError(DomainError):
    """Raised when a session, record, class or student does not exist."""

    kind = "not_found"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    kind = "authorization_error"


class InvalidStateTransition(DomainError):
    """Raised when a lifecycle operation is not allowed from the current status."""

    kind = "invalid_state_transition"


class ConflictError(DomainError):
    """Raised when a write would break a uniqueness rule (active session, check-in)."""

    kind = "conflict"


class StoreError(DomainError):
    """Raised when the underlying document store fails."""

    kind = "store_error"
