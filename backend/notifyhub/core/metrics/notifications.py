from notifyhub.core.metrics.base import BaseMetrics


class NotificationMetrics(BaseMetrics):
    """Metrics for the notification pipeline."""

    def _create_instruments(self) -> None:
        # Fan-out
        self.notifications_created = self._meter.create_counter(
            name="notifications.created.total", description="Notifications persisted by fan-out", unit="1"
        )
        self.notifications_rate_limited = self._meter.create_counter(
            name="notifications.rate_limited.total",
            description="Dispatch calls dropped by the workspace rate limit",
            unit="1",
        )
        self.notifications_skipped = self._meter.create_counter(
            name="notifications.skipped.total", description="Recipients skipped by preferences", unit="1"
        )

        # Delivery
        self.notifications_delivered = self._meter.create_counter(
            name="notifications.delivered.total", description="Successful delivery attempts", unit="1"
        )
        self.notifications_failed = self._meter.create_counter(
            name="notifications.failed.total", description="Failed delivery attempts", unit="1"
        )
        self.notifications_exhausted = self._meter.create_counter(
            name="notifications.exhausted.total", description="Notifications that ran out of attempts", unit="1"
        )
        self.notifications_deferred = self._meter.create_counter(
            name="notifications.deferred.total", description="Deliveries postponed by quiet hours", unit="1"
        )
        self.delivery_time = self._meter.create_histogram(
            name="notification.delivery.time", description="Time spent in delivery channels", unit="s"
        )
        self.status_changes = self._meter.create_counter(
            name="notification.status.changes.total", description="Delivery status transitions", unit="1"
        )

        # Retention
        self.notifications_archived = self._meter.create_counter(
            name="notifications.archived.total", description="Notifications archived by retention", unit="1"
        )
        self.notifications_purged = self._meter.create_counter(
            name="notifications.purged.total", description="Expired notifications deleted", unit="1"
        )

        # Digests
        self.digests_sent = self._meter.create_counter(
            name="notifications.digests.total", description="Email digests handed to the relay", unit="1"
        )

    def record_created(self, workspace_id: str, priority: str, count: int = 1) -> None:
        self.notifications_created.add(count, attributes={"workspace_id": workspace_id, "priority": priority})

    def record_rate_limited(self, workspace_id: str) -> None:
        self.notifications_rate_limited.add(1, attributes={"workspace_id": workspace_id})

    def record_skipped(self, reason: str) -> None:
        self.notifications_skipped.add(1, attributes={"reason": reason})

    def record_status_change(self, previous: str, new: str) -> None:
        self.status_changes.add(1, attributes={"from": previous, "to": new})

    def record_delivery(self, channel: str, duration: float, success: bool) -> None:
        self.delivery_time.record(duration, attributes={"channel": channel, "success": str(success).lower()})
        if success:
            self.notifications_delivered.add(1, attributes={"channel": channel})
        else:
            self.notifications_failed.add(1, attributes={"channel": channel})

    def record_exhausted(self) -> None:
        self.notifications_exhausted.add(1)

    def record_deferred(self) -> None:
        self.notifications_deferred.add(1)

    def record_archived(self, count: int) -> None:
        self.notifications_archived.add(count)

    def record_purged(self, count: int) -> None:
        self.notifications_purged.add(count)

    def record_digest(self, frequency: str, success: bool) -> None:
        self.digests_sent.add(1, attributes={"frequency": frequency, "success": str(success).lower()})
