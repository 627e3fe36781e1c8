from notifyhub.domain.enums.notification import (
    AuditAction,
    DeliveryStatus,
    EmailDigestFrequency,
    MaintenanceTask,
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    PreferenceSource,
)
from notifyhub.domain.enums.storage import CollectionNames

__all__ = [
    "AuditAction",
    "CollectionNames",
    "DeliveryStatus",
    "EmailDigestFrequency",
    "MaintenanceTask",
    "NotificationCategory",
    "NotificationChannel",
    "NotificationPriority",
    "PreferenceSource",
]
