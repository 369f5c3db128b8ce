class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when the caller's role lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a fee, installment, enrollment or attendance day does not resolve."""


class InvalidStateError(DomainError):
    """Raised when an operation is not legal from the current status."""


class InvariantViolationError(DomainError):
    """Raised when an operation would break a ledger invariant."""


class TransientDependencyError(DomainError):
    """Raised by collaborators (receipt store, event bus) on recoverable failures.

    Services log it and carry on; it never blocks a ledger transition.
    """
