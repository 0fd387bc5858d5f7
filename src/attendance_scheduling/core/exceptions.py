class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced row does not exist (or is not usable) in the business."""


class ConflictError(DomainError):
    """Raised when a write would break a uniqueness or exclusivity invariant."""


class InvalidWindow(ValidationError):
    """Shift template start/end minutes are out of range or inverted."""


class PositionNotFound(NotFoundError):
    """No active employee position for the business."""


class NoOpenRecord(NotFoundError):
    """Punch-out without a matching in-progress record."""


class TemplateUnavailable(NotFoundError):
    """Assignment against a missing or archived shift template."""


class ExceptionNotFound(NotFoundError):
    """Resolution against an unknown attendance exception."""


class PolicyNotFound(NotFoundError):
    pass


class TemplateNotFound(NotFoundError):
    pass


class AssignmentNotFound(NotFoundError):
    pass


class AlreadyClockedIn(ConflictError):
    """Second punch-in while a record is still in progress."""


class OverlappingAssignment(ConflictError):
    """Assignment range collides with an active or suspended one."""


class TransactionConflict(ConflictError):
    """The store aborted the transaction to break a lock cycle (deadlock)."""
