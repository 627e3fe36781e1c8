import asyncio
import logging
from datetime import datetime

from notifyhub.core.clock import Clock
from notifyhub.core.metrics import NotificationMetrics
from notifyhub.db.repositories import NotificationRepository, PreferenceRepository
from notifyhub.domain.enums import NotificationChannel
from notifyhub.domain.notification import DomainNotificationDigest, preference_flag_for
from notifyhub.domain.preferences import DomainNotificationPreferences, digest_period, latest_digest_slot
from notifyhub.services.delivery import DeliveryChannel, DigestChannel
from notifyhub.settings import Settings


class NotificationDigestService:
    """Batched email for users whose email frequency is daily or weekly.

    Instant email skips these users, so their unread notifications are collected
    here and handed to the email channel once per digest slot. A row's
    ``last_digest_at`` marker is claimed atomically before sending, so concurrent
    maintenance runs never send the same digest twice.
    """

    def __init__(
        self,
        preference_repository: PreferenceRepository,
        notification_repository: NotificationRepository,
        channels: list[DeliveryChannel],
        clock: Clock,
        settings: Settings,
        metrics: NotificationMetrics,
        logger: logging.Logger,
    ) -> None:
        self.preferences = preference_repository
        self.notifications = notification_repository
        self.clock = clock
        self.settings = settings
        self.metrics = metrics
        self.logger = logger
        self.channel: DigestChannel | None = next(
            (
                c for c in channels
                if c.channel == NotificationChannel.EMAIL and isinstance(c, DigestChannel)
            ),
            None,
        )

    async def send_due_digests(self) -> int:
        """Send every digest whose slot has passed since the last one; returns how many went out."""
        channel = self.channel
        if channel is None:
            self.logger.debug("No email channel configured; skipping digests")
            return 0

        now = self.clock.now()
        sent = 0
        async for preferences in self.preferences.iter_digest_subscribers():
            slot = latest_digest_slot(
                now,
                preferences.email_frequency,
                preferences.email_digest_time,
                preferences.email_digest_day,
                preferences.timezone,
            )
            if slot is None:
                continue
            if preferences.last_digest_at is not None and preferences.last_digest_at >= slot:
                continue
            if not await self.preferences.claim_digest(preferences.user_id, preferences.workspace_id, slot, now):
                continue
            sent += await self._send(channel, preferences, slot, now)
        return sent

    async def _send(
            self,
            channel: DigestChannel,
            preferences: DomainNotificationPreferences,
            slot: datetime,
            now: datetime,
    ) -> int:
        since = preferences.last_digest_at or slot - digest_period(preferences.email_frequency)

        excluded: list[str] = []
        if preferences.workspace_id is None:
            excluded = await self.preferences.list_scoped_workspace_ids(preferences.user_id)
        candidates = await self.notifications.find_digest_items(
            preferences.user_id,
            since,
            now,
            preferences.workspace_id,
            excluded,
            self.settings.NOTIF_DIGEST_MAX_ITEMS,
        )
        items = [
            n for n in candidates
            if (flag := preference_flag_for(n.event_type)) is None or preferences.flag(flag)
        ]
        if not items:
            return 0

        scope = preferences.workspace_id or "global"
        digest = DomainNotificationDigest(
            digest_id=f"digest:{preferences.user_id}:{scope}:{slot.isoformat()}",
            user_id=preferences.user_id,
            workspace_id=preferences.workspace_id,
            frequency=preferences.email_frequency,
            period_start=since,
            period_end=now,
            notifications=items,
        )
        try:
            await asyncio.wait_for(
                channel.send_digest(digest), timeout=self.settings.NOTIF_DELIVERY_TIMEOUT_SECONDS
            )
        except Exception as e:
            await self.preferences.release_digest(
                preferences.user_id, preferences.workspace_id, preferences.last_digest_at
            )
            self.metrics.record_digest(str(preferences.email_frequency), success=False)
            self.logger.warning(
                f"Digest {digest.digest_id} failed: {str(e) or type(e).__name__}",
                extra={"user_id": preferences.user_id, "workspace_id": preferences.workspace_id},
            )
            return 0

        self.metrics.record_digest(str(preferences.email_frequency), success=True)
        self.logger.info(
            f"Sent {preferences.email_frequency} digest with {len(items)} notifications",
            extra={"user_id": preferences.user_id, "workspace_id": preferences.workspace_id},
        )
        return 1
