import httpx

from notifyhub.domain.enums import NotificationChannel
from notifyhub.domain.notification import DomainNotification, DomainNotificationDigest
from notifyhub.schemas_pydantic.notification import NotificationDigestMessage, NotificationPushMessage


class EmailRelayChannel:
    """Hands notifications and digests to the external email renderer over HTTP."""

    channel = NotificationChannel.EMAIL

    def __init__(self, http_client: httpx.AsyncClient, relay_url: str) -> None:
        self._client = http_client
        self._relay_url = relay_url

    async def send(self, notification: DomainNotification) -> None:
        payload = NotificationPushMessage.from_domain(notification).model_dump(mode="json")
        await self._post(payload, notification.notification_id)

    async def send_digest(self, digest: DomainNotificationDigest) -> None:
        payload = NotificationDigestMessage.from_domain(digest).model_dump(mode="json")
        await self._post(payload, digest.digest_id)

    async def _post(self, payload: dict, idempotency_key: str) -> None:
        response = await self._client.post(
            self._relay_url,
            json=payload,
            headers={"Idempotency-Key": idempotency_key},
        )
        response.raise_for_status()
