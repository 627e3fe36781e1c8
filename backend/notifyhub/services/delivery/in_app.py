import redis.asyncio as redis

from notifyhub.domain.enums import NotificationChannel
from notifyhub.domain.notification import DomainNotification
from notifyhub.schemas_pydantic.notification import NotificationPushMessage


class InAppPushChannel:
    """Publishes notifications on a per-user Redis channel for live clients.

    A publish with no subscribers is still a successful delivery: offline
    clients pick the notification up from the list API.
    """

    channel = NotificationChannel.IN_APP

    def __init__(self, redis_client: redis.Redis, channel_prefix: str = "notif:user:") -> None:
        self._redis = redis_client
        self._prefix = channel_prefix

    def channel_for(self, user_id: str) -> str:
        return f"{self._prefix}{user_id}"

    async def send(self, notification: DomainNotification) -> None:
        message = NotificationPushMessage.from_domain(notification)
        await self._redis.publish(self.channel_for(notification.user_id), message.model_dump_json())
