from notifyhub.db.repositories.audit_repository import AuditRepository
from notifyhub.db.repositories.membership_repository import WorkspaceMembershipRepository
from notifyhub.db.repositories.notification_repository import NotificationRepository
from notifyhub.db.repositories.preference_repository import PreferenceRepository
from notifyhub.db.repositories.rate_limit_repository import RateLimitRepository

__all__ = [
    "AuditRepository",
    "NotificationRepository",
    "PreferenceRepository",
    "RateLimitRepository",
    "WorkspaceMembershipRepository",
]
