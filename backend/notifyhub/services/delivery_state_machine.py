"""Delivery lifecycle of a single notification.

    created -> delivered -> seen -> acknowledged
    created | delivered -> failed -> retrying -> delivered
    retrying -> failed (attempts exhausted, terminal)

Every transition is a compare-and-set on the notification's ``version`` and is
followed by exactly one audit entry carrying the previous and new status. A call
whose target is already reached (or that is not legal from the current state)
changes nothing and writes nothing.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Sequence

from notifyhub.core.clock import Clock
from notifyhub.core.metrics import NotificationMetrics
from notifyhub.db.repositories import AuditRepository, NotificationRepository
from notifyhub.domain.audit import AuditLogEntry
from notifyhub.domain.enums import AuditAction, DeliveryStatus, NotificationChannel
from notifyhub.domain.exceptions import ConflictError
from notifyhub.domain.notification import DomainNotification, NotificationNotFoundError
from notifyhub.settings import Settings

MAX_CAS_ATTEMPTS = 5
MAX_ERROR_LENGTH = 1000

PENDING_STATUSES = (DeliveryStatus.CREATED, DeliveryStatus.FAILED, DeliveryStatus.RETRYING)
CLIENT_VISIBLE_STATUSES = (DeliveryStatus.SEEN, DeliveryStatus.ACKNOWLEDGED)


@dataclass(frozen=True)
class TransitionPlan:
    action: AuditAction
    changes: dict[str, Any]
    detail: dict[str, Any] | None = None


@dataclass(frozen=True)
class TransitionResult:
    changed: bool
    notification: DomainNotification


Planner = Callable[[DomainNotification, datetime], TransitionPlan | None]


def backoff_seconds(retry_count: int, cap_seconds: int) -> int:
    """2^retry_count seconds, capped."""
    return min(2 ** min(retry_count, 30), cap_seconds)


def is_exhausted(notification: DomainNotification, max_attempts: int) -> bool:
    return notification.delivery_status == DeliveryStatus.FAILED and notification.retry_count >= max_attempts


def _release_claim() -> dict[str, Any]:
    return {"claimed_by": None, "claimed_until": None}


def _holds_claim(notification: DomainNotification, worker_id: str | None) -> bool:
    return worker_id is None or notification.claimed_by == worker_id


def _with_channels(notification: DomainNotification, channels: Sequence[NotificationChannel]) -> dict[str, Any]:
    """Changes that add newly reached channels to ``delivered_channels``."""
    merged = list(notification.delivered_channels)
    merged.extend(str(c) for c in channels if str(c) not in merged)
    if merged == notification.delivered_channels:
        return {}
    return {"delivered_channels": merged}


class DeliveryStateMachine:
    def __init__(
        self,
        notification_repository: NotificationRepository,
        audit_repository: AuditRepository,
        clock: Clock,
        settings: Settings,
        metrics: NotificationMetrics,
        logger: logging.Logger,
    ) -> None:
        self.repository = notification_repository
        self.audit = audit_repository
        self.clock = clock
        self.settings = settings
        self.metrics = metrics
        self.logger = logger

    @property
    def max_attempts(self) -> int:
        return self.settings.NOTIF_MAX_DELIVERY_ATTEMPTS

    # Delivery side (retry scheduler)

    async def mark_delivered(
            self,
            notification_id: str,
            worker_id: str | None = None,
            channels: Sequence[NotificationChannel] = (),
    ) -> TransitionResult:
        def plan(n: DomainNotification, now: datetime) -> TransitionPlan | None:
            if n.delivery_status not in PENDING_STATUSES or is_exhausted(n, self.max_attempts):
                return None
            if not _holds_claim(n, worker_id):
                return None
            changes: dict[str, Any] = {
                "delivery_status": DeliveryStatus.DELIVERED,
                "next_retry_at": None,
                **_release_claim(),
                **_with_channels(n, channels),
            }
            if n.delivered_at is None:
                changes["delivered_at"] = now
            return TransitionPlan(AuditAction.DELIVERED, changes, {"retry_count": n.retry_count})

        return await self._transition(notification_id, plan)

    async def mark_failed(
            self,
            notification_id: str,
            error: str,
            worker_id: str | None = None,
            channels: Sequence[NotificationChannel] = (),
    ) -> TransitionResult:
        def plan(n: DomainNotification, now: datetime) -> TransitionPlan | None:
            legal = PENDING_STATUSES + (DeliveryStatus.DELIVERED,)
            if n.delivery_status not in legal or is_exhausted(n, self.max_attempts):
                return None
            if not _holds_claim(n, worker_id):
                return None
            retry_count = n.retry_count + 1
            changes: dict[str, Any] = {
                "retry_count": retry_count,
                "last_error": error[:MAX_ERROR_LENGTH],
                **_release_claim(),
                **_with_channels(n, channels),
            }
            if retry_count >= self.max_attempts:
                changes["delivery_status"] = DeliveryStatus.FAILED
                changes["next_retry_at"] = None
                action = AuditAction.FAILED
            else:
                delay = backoff_seconds(retry_count, self.settings.NOTIF_BACKOFF_CAP_SECONDS)
                changes["delivery_status"] = DeliveryStatus.RETRYING
                changes["next_retry_at"] = now + timedelta(seconds=delay)
                action = AuditAction.RETRYING
            return TransitionPlan(action, changes, {"retry_count": retry_count, "error": changes["last_error"]})

        result = await self._transition(notification_id, plan)
        if result.changed and is_exhausted(result.notification, self.max_attempts):
            self.metrics.record_exhausted()
            self.logger.warning(
                f"Notification {notification_id} permanently failed after {result.notification.retry_count} attempts",
                extra={"notification_id": notification_id, "last_error": result.notification.last_error},
            )
        return result

    async def defer(
            self,
            notification_id: str,
            until: datetime,
            reason: str,
            worker_id: str | None = None,
            channels: Sequence[NotificationChannel] = (),
    ) -> TransitionResult:
        """Push the next attempt to ``until`` without consuming an attempt.

        ``channels`` that were reached in the same attempt are recorded so they are not sent again.
        """

        def plan(n: DomainNotification, now: datetime) -> TransitionPlan | None:
            if n.delivery_status not in PENDING_STATUSES or is_exhausted(n, self.max_attempts):
                return None
            if not _holds_claim(n, worker_id):
                return None
            changes = {"next_retry_at": until, **_release_claim(), **_with_channels(n, channels)}
            return TransitionPlan(AuditAction.DEFERRED, changes, {"reason": reason, "until": until.isoformat()})

        return await self._transition(notification_id, plan)

    # Client side (acknowledge API)

    async def mark_seen(self, notification_id: str, user_id: str) -> TransitionResult:
        def plan(n: DomainNotification, now: datetime) -> TransitionPlan | None:
            if n.delivery_status in CLIENT_VISIBLE_STATUSES:
                return None
            changes: dict[str, Any] = {
                "delivery_status": DeliveryStatus.SEEN,
                "next_retry_at": None,
                **_release_claim(),
            }
            if n.seen_at is None:
                changes["seen_at"] = now
            return TransitionPlan(AuditAction.SEEN, changes)

        return await self._transition(notification_id, plan, user_id=user_id)

    async def mark_acknowledged(self, notification_id: str, user_id: str) -> TransitionResult:
        def plan(n: DomainNotification, now: datetime) -> TransitionPlan | None:
            if n.delivery_status == DeliveryStatus.ACKNOWLEDGED:
                return None
            changes: dict[str, Any] = {
                "delivery_status": DeliveryStatus.ACKNOWLEDGED,
                "acknowledged_at": now,
                "read": True,
                "next_retry_at": None,
                **_release_claim(),
            }
            if n.read_at is None:
                changes["read_at"] = now
            if n.seen_at is None:
                changes["seen_at"] = now
            return TransitionPlan(AuditAction.ACKNOWLEDGED, changes)

        return await self._transition(notification_id, plan, user_id=user_id)

    async def mark_read(self, notification_id: str, user_id: str) -> TransitionResult:
        def plan(n: DomainNotification, now: datetime) -> TransitionPlan | None:
            if n.read:
                return None
            changes: dict[str, Any] = {"read": True, "read_at": n.read_at or now}
            if n.delivery_status not in CLIENT_VISIBLE_STATUSES:
                changes["delivery_status"] = DeliveryStatus.SEEN
                changes["next_retry_at"] = None
                changes.update(_release_claim())
                if n.seen_at is None:
                    changes["seen_at"] = now
            return TransitionPlan(AuditAction.READ, changes)

        return await self._transition(notification_id, plan, user_id=user_id)

    async def _transition(
            self,
            notification_id: str,
            planner: Planner,
            user_id: str | None = None,
    ) -> TransitionResult:
        for _ in range(MAX_CAS_ATTEMPTS):
            current = await self.repository.get_notification(notification_id, user_id)
            if current is None:
                raise NotificationNotFoundError(notification_id)

            now = self.clock.now()
            plan = planner(current, now)
            if plan is None:
                return TransitionResult(changed=False, notification=current)

            updated = await self.repository.compare_and_set(notification_id, current.version, plan.changes)
            if updated is None:
                continue

            await self.audit.append(AuditLogEntry(
                action=plan.action,
                workspace_id=updated.workspace_id,
                created_at=now,
                notification_id=notification_id,
                user_id=updated.user_id,
                previous_status=current.delivery_status,
                new_status=updated.delivery_status,
                detail=plan.detail or {},
            ))
            if current.delivery_status != updated.delivery_status:
                self.metrics.record_status_change(current.delivery_status, updated.delivery_status)
            self.logger.debug(
                f"Notification {notification_id}: {current.delivery_status} -> {updated.delivery_status}",
                extra={"notification_id": notification_id, "action": str(plan.action)},
            )
            return TransitionResult(changed=True, notification=updated)

        raise ConflictError(f"Notification '{notification_id}' kept changing concurrently, giving up")
