from notifyhub.core.utils import StringEnum


class CollectionNames(StringEnum):
    NOTIFICATIONS = "notifications"
    NOTIFICATION_PREFERENCES = "notification_preferences"
    NOTIFICATION_RATE_LIMITS = "notification_rate_limits"
    NOTIFICATION_AUDIT_LOG = "notification_audit_log"
    WORKSPACE_MEMBERS = "workspace_members"
