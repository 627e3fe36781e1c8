from notifyhub.core.utils import StringEnum


class NotificationChannel(StringEnum):
    """Notification delivery channels."""
    IN_APP = "in_app"
    EMAIL = "email"


class NotificationPriority(StringEnum):
    """Notification priority levels."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    NotificationPriority.LOW: 0,
    NotificationPriority.NORMAL: 1,
    NotificationPriority.HIGH: 2,
    NotificationPriority.URGENT: 3,
}


class DeliveryStatus(StringEnum):
    """Notification delivery lifecycle."""
    CREATED = "created"
    DELIVERED = "delivered"
    SEEN = "seen"
    ACKNOWLEDGED = "acknowledged"
    FAILED = "failed"
    RETRYING = "retrying"


class NotificationCategory(StringEnum):
    """UI tab groups over event types."""
    MENTIONS = "mentions"
    TASKS = "tasks"
    DEALS = "deals"
    DOCUMENTS = "documents"
    TEAM = "team"
    ACHIEVEMENTS = "achievements"
    AGENTS = "agents"


class AuditAction(StringEnum):
    """Actions recorded in the notification audit log."""
    CREATED = "created"
    DELIVERED = "delivered"
    SEEN = "seen"
    ACKNOWLEDGED = "acknowledged"
    FAILED = "failed"
    RETRYING = "retrying"
    READ = "read"
    DELETED = "deleted"
    DEFERRED = "deferred"
    RATE_LIMITED = "rate_limited"


class EmailDigestFrequency(StringEnum):
    INSTANT = "instant"
    DAILY = "daily"
    WEEKLY = "weekly"
    NEVER = "never"


class PreferenceSource(StringEnum):
    """Where an effective preference row came from."""
    WORKSPACE = "workspace"
    GLOBAL = "global"
    DEFAULT = "default"


class MaintenanceTask(StringEnum):
    RETRY_FAILED = "retry_failed"
    ARCHIVE_OLD = "archive_old"
    CLEANUP_EXPIRED = "cleanup_expired"
    CLEANUP_RATE_LIMITS = "cleanup_rate_limits"
    CLEANUP_AUDIT_LOG = "cleanup_audit_log"
    SEND_DIGESTS = "send_digests"
