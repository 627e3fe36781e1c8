from notifyhub.domain.notification.categories import categories_for, preference_flag_for
from notifyhub.domain.notification.exceptions import (
    InvalidCursorError,
    NotificationAccessDeniedError,
    NotificationNotFoundError,
    NotificationValidationError,
    WorkspaceNotFoundError,
)
from notifyhub.domain.notification.models import (
    DispatchRequest,
    DomainNotification,
    DomainNotificationDigest,
    DomainNotificationPage,
    LinkedEntity,
    MaintenanceTaskResult,
    NotificationCursor,
    RetrySweepResult,
)

__all__ = [
    "DispatchRequest",
    "DomainNotification",
    "DomainNotificationDigest",
    "DomainNotificationPage",
    "InvalidCursorError",
    "LinkedEntity",
    "MaintenanceTaskResult",
    "NotificationAccessDeniedError",
    "NotificationCursor",
    "NotificationNotFoundError",
    "NotificationValidationError",
    "RetrySweepResult",
    "WorkspaceNotFoundError",
    "categories_for",
    "preference_flag_for",
]
