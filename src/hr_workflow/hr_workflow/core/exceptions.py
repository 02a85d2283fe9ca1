class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class DuplicateWeekError(ValidationError):
    """Raised when a non-cancelled timesheet already covers the employee's week."""


class HoursExceededError(ValidationError):
    """Raised when submitted entries exceed the weekly hours ceiling."""


class UnknownTaskError(ValidationError):
    pass


class InactiveTaskError(ValidationError):
    pass


class DuplicateTaskError(ValidationError):
    pass


class NotFoundError(DomainError):
    """Raised when an id does not resolve."""


class InvalidStateError(DomainError):
    """Raised when a transition is attempted from a non-permitted status."""


class AuthenticationError(DomainError):
    """Raised when the caller has no employee identity."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""



class TypeNotConfiguredError(DomainError):
    """Raised when a request type code or category is missing from the registry.

    This is a configuration/integrity fault, not a user error.
    """


class DependencyUnavailableError(DomainError):
    """Raised when the store or the employee directory cannot be reached."""
