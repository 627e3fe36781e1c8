import asyncio
import logging
import socket
import time
from datetime import datetime, timedelta
from uuid import uuid4

from notifyhub.core.clock import Clock
from notifyhub.core.metrics import NotificationMetrics
from notifyhub.db.repositories import NotificationRepository
from notifyhub.domain.enums import DeliveryStatus, NotificationChannel
from notifyhub.domain.notification import DomainNotification, RetrySweepResult
from notifyhub.services.delivery import DeliveryChannel
from notifyhub.services.delivery_state_machine import DeliveryStateMachine
from notifyhub.services.preference_resolver import PreferenceOutcome, PreferenceResolver
from notifyhub.settings import Settings


class NotificationScheduler:
    """Stateless sweep that claims due notifications and pushes them through the channels.

    APScheduler owns the timer (interval trigger) in the scheduler worker.
    Several sweepers may run at once: each claim is an atomic lease on one
    row, so workers skip each other's rows instead of waiting on them.
    """

    def __init__(
        self,
        notification_repository: NotificationRepository,
        state_machine: DeliveryStateMachine,
        preference_resolver: PreferenceResolver,
        channels: list[DeliveryChannel],
        clock: Clock,
        settings: Settings,
        metrics: NotificationMetrics,
        logger: logging.Logger,
        worker_id: str | None = None,
    ) -> None:
        self.repository = notification_repository
        self.state_machine = state_machine
        self.resolver = preference_resolver
        self.channels = channels
        self.clock = clock
        self.settings = settings
        self.metrics = metrics
        self.logger = logger
        self.worker_id = worker_id or f"{socket.gethostname()}:{uuid4().hex[:8]}"

    async def process_due(self, batch_size: int | None = None) -> RetrySweepResult:
        """Claim and attempt up to ``batch_size`` due notifications, most urgent first.

        Called by APScheduler on a fixed interval. Channel failures are recorded
        on the notification; storage failures propagate to the caller.
        """
        limit = batch_size or self.settings.NOTIF_RETRY_BATCH_SIZE
        result = RetrySweepResult()

        while result.claimed < limit:
            now = self.clock.now()
            notification = await self.repository.claim_next_due(
                now=now,
                worker_id=self.worker_id,
                lease_until=now + timedelta(seconds=self.settings.NOTIF_CLAIM_LEASE_SECONDS),
                max_attempts=self.settings.NOTIF_MAX_DELIVERY_ATTEMPTS,
            )
            if notification is None:
                break
            result.claimed += 1
            await self._attempt(notification, result)

        if result.claimed:
            self.logger.info(
                f"Delivery sweep: {result.delivered}/{result.claimed} delivered",
                extra={
                    "worker_id": self.worker_id,
                    "claimed": result.claimed,
                    "delivered": result.delivered,
                    "failed": result.failed,
                    "exhausted": result.exhausted,
                    "deferred": result.deferred,
                },
            )
        return result

    async def _attempt(self, notification: DomainNotification, result: RetrySweepResult) -> None:
        """Send to every channel still owed this notification.

        Channels are independent: one that succeeds is recorded on the row and
        never sent again, one in quiet hours waits for the window to close
        while the others go out now, and one that fails only retries itself.
        """
        already = set(notification.delivered_channels)
        targets: list[DeliveryChannel] = []
        defer_until: datetime | None = None
        defer_reason = ""
        for channel in self.channels:
            if channel.channel in already:
                continue
            decision = await self.resolver.evaluate(
                notification.user_id,
                notification.workspace_id,
                notification.event_type,
                channel.channel,
                notification.priority,
            )
            if decision.outcome == PreferenceOutcome.DEFER and decision.defer_until is not None:
                if defer_until is None or decision.defer_until > defer_until:
                    defer_until = decision.defer_until
                    defer_reason = f"{channel.channel}:{decision.reason}"
                continue
            if decision.allowed:
                targets.append(channel)

        reached: list[NotificationChannel] = []
        errors: list[str] = []
        for channel in targets:
            started = time.monotonic()
            try:
                await asyncio.wait_for(
                    channel.send(notification), timeout=self.settings.NOTIF_DELIVERY_TIMEOUT_SECONDS
                )
            except Exception as e:
                self.metrics.record_delivery(channel.channel, time.monotonic() - started, success=False)
                errors.append(f"{channel.channel}: {str(e) or type(e).__name__}")
                continue
            self.metrics.record_delivery(channel.channel, time.monotonic() - started, success=True)
            reached.append(channel.channel)

        notification_id = notification.notification_id
        if errors:
            error = "; ".join(errors)
            self.logger.warning(
                f"Delivery of {notification_id} failed: {error}",
                extra={
                    "notification_id": notification_id,
                    "attempt": notification.retry_count + 1,
                    "reached": [str(c) for c in reached],
                },
            )
            outcome = await self.state_machine.mark_failed(notification_id, error, self.worker_id, reached)
            if not outcome.changed:
                return
            if outcome.notification.delivery_status == DeliveryStatus.FAILED:
                result.exhausted += 1
            else:
                result.failed += 1
            return

        if defer_until is not None:
            outcome = await self.state_machine.defer(
                notification_id, defer_until, defer_reason, self.worker_id, reached
            )
            if outcome.changed:
                self.metrics.record_deferred()
                result.deferred += 1
            return

        outcome = await self.state_machine.mark_delivered(notification_id, self.worker_id, reached)
        if outcome.changed:
            result.delivered += 1
