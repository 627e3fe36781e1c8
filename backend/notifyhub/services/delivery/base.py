from typing import Protocol, runtime_checkable

from notifyhub.domain.enums import NotificationChannel
from notifyhub.domain.notification import DomainNotification, DomainNotificationDigest


class DeliveryChannel(Protocol):
    """Outbound transport for one notification; raises on failure."""

    channel: NotificationChannel

    async def send(self, notification: DomainNotification) -> None: ...


@runtime_checkable
class DigestChannel(Protocol):
    """Channel that can also deliver a batched digest."""

    channel: NotificationChannel

    async def send_digest(self, digest: DomainNotificationDigest) -> None: ...
