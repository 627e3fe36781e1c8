from notifyhub.domain.exceptions import ForbiddenError, NotFoundError, ValidationError


class NotificationNotFoundError(NotFoundError):
    """Raised when a notification is not found for the acting user."""

    def __init__(self, notification_id: str) -> None:
        super().__init__("Notification", notification_id)


class WorkspaceNotFoundError(NotFoundError):
    """Raised when a dispatch targets a workspace without any membership."""

    def __init__(self, workspace_id: str) -> None:
        super().__init__("Workspace", workspace_id)


class NotificationValidationError(ValidationError):
    """Raised when notification validation fails."""

    pass


class InvalidCursorError(NotificationValidationError):
    """Raised when a pagination cursor cannot be decoded."""

    def __init__(self, cursor: str) -> None:
        self.cursor = cursor
        super().__init__("Invalid pagination cursor")


class NotificationAccessDeniedError(ForbiddenError):
    """Raised when a user acts on a workspace they are not a member of."""

    def __init__(self, user_id: str, workspace_id: str) -> None:
        self.user_id = user_id
        self.workspace_id = workspace_id
        super().__init__(f"User '{user_id}' is not a member of workspace '{workspace_id}'")
