class DomainError(Exception):
    """Root of every error the notification domain raises on purpose.

    The API layer turns each subclass into an HTTP status; anything that is not a
    ``DomainError`` reaches the client as a plain 500.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(DomainError):
    """A notification, workspace or preference row does not exist for the caller."""

    def __init__(self, entity: str, identifier: str) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} '{identifier}' not found")


class ValidationError(DomainError):
    """Input the domain rejects: malformed dispatches, preference patches, cursors."""


class ConflictError(DomainError):
    """A status transition lost its compare-and-swap too many times in a row."""


class UnauthorizedError(DomainError):
    """The request carries no acting user."""


class ForbiddenError(DomainError):
    """The acting user is not allowed into the workspace or operation."""
