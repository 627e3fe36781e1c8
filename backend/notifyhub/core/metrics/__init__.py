from notifyhub.core.metrics.base import BaseMetrics
from notifyhub.core.metrics.notifications import NotificationMetrics

__all__ = [
    "BaseMetrics",
    "NotificationMetrics",
]
