from notifyhub.infrastructure.mappers.audit_mapper import AuditMapper
from notifyhub.infrastructure.mappers.notification_mapper import NotificationMapper, as_utc
from notifyhub.infrastructure.mappers.preference_mapper import PreferenceMapper

__all__ = [
    "AuditMapper",
    "NotificationMapper",
    "PreferenceMapper",
    "as_utc",
]
