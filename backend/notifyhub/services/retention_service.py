import logging
import time
from datetime import timedelta
from typing import Awaitable, Callable

from notifyhub.core.clock import Clock
from notifyhub.core.metrics import NotificationMetrics
from notifyhub.db.repositories import AuditRepository, NotificationRepository, RateLimitRepository
from notifyhub.domain.audit import AuditLogEntry
from notifyhub.domain.enums import AuditAction, MaintenanceTask
from notifyhub.domain.notification import MaintenanceTaskResult
from notifyhub.services.digest_service import NotificationDigestService
from notifyhub.services.notification_scheduler import NotificationScheduler
from notifyhub.settings import Settings

PURGE_BATCH_SIZE = 500


class NotificationRetentionService:
    """Bounded-growth jobs. Each one is idempotent and safe alongside live traffic."""

    def __init__(
        self,
        notification_repository: NotificationRepository,
        rate_limit_repository: RateLimitRepository,
        audit_repository: AuditRepository,
        scheduler: NotificationScheduler,
        digest_service: NotificationDigestService,
        clock: Clock,
        settings: Settings,
        metrics: NotificationMetrics,
        logger: logging.Logger,
    ) -> None:
        self.notifications = notification_repository
        self.rate_limits = rate_limit_repository
        self.audit = audit_repository
        self.scheduler = scheduler
        self.digests = digest_service
        self.clock = clock
        self.settings = settings
        self.metrics = metrics
        self.logger = logger

    async def archive_read(self, older_than_days: int | None = None) -> int:
        """Archive read notifications older than the horizon; archived rows are kept, only hidden."""
        days = older_than_days if older_than_days is not None else self.settings.NOTIF_ARCHIVE_AFTER_DAYS
        now = self.clock.now()
        archived = await self.notifications.archive_read_before(now - timedelta(days=days), now)
        if archived:
            self.metrics.record_archived(archived)
            self.logger.info(f"Archived {archived} read notifications older than {days} days")
        return archived

    async def purge_expired(self) -> int:
        """Hard-delete notifications past ``expires_at``, auditing each deletion."""
        total = 0
        while True:
            now = self.clock.now()
            expired = await self.notifications.find_expired(now, PURGE_BATCH_SIZE)
            if not expired:
                break
            deleted = await self.notifications.delete_expired([n.notification_id for n in expired], now)
            await self.audit.append_many([
                AuditLogEntry(
                    action=AuditAction.DELETED,
                    workspace_id=n.workspace_id,
                    created_at=now,
                    notification_id=n.notification_id,
                    user_id=n.user_id,
                    previous_status=n.delivery_status,
                    detail={"reason": "expired", "read": n.read},
                )
                for n in expired
            ])
            total += deleted
            if len(expired) < PURGE_BATCH_SIZE:
                break

        if total:
            self.metrics.record_purged(total)
            self.logger.info(f"Purged {total} expired notifications")
        return total

    async def prune_rate_limit_counters(self, older_than_minutes: int | None = None) -> int:
        minutes = (
            older_than_minutes if older_than_minutes is not None
            else self.settings.NOTIF_RATE_LIMIT_RETENTION_MINUTES
        )
        return await self.rate_limits.delete_windows_before(self.clock.now() - timedelta(minutes=minutes))

    async def prune_audit_log(self, older_than_days: int | None = None) -> int:
        days = older_than_days if older_than_days is not None else self.settings.NOTIF_AUDIT_RETENTION_DAYS
        removed = await self.audit.delete_before(self.clock.now() - timedelta(days=days))
        if removed:
            self.logger.info(f"Pruned {removed} audit entries older than {days} days")
        return removed

    async def _retry_failed(self) -> int:
        result = await self.scheduler.process_due()
        return result.claimed

    async def run_maintenance(self, tasks: list[MaintenanceTask] | None = None) -> list[MaintenanceTaskResult]:
        """Run the named jobs (all by default) and report each one.

        A failing job is logged and reported; the remaining jobs still run.
        """
        jobs: dict[MaintenanceTask, Callable[[], Awaitable[int]]] = {
            MaintenanceTask.RETRY_FAILED: self._retry_failed,
            MaintenanceTask.ARCHIVE_OLD: self.archive_read,
            MaintenanceTask.CLEANUP_EXPIRED: self.purge_expired,
            MaintenanceTask.CLEANUP_RATE_LIMITS: self.prune_rate_limit_counters,
            MaintenanceTask.CLEANUP_AUDIT_LOG: self.prune_audit_log,
            MaintenanceTask.SEND_DIGESTS: self.digests.send_due_digests,
        }
        selected = tasks or list(jobs)

        results: list[MaintenanceTaskResult] = []
        for task in selected:
            started = time.monotonic()
            try:
                affected = await jobs[task]()
            except Exception as e:
                self.logger.error(f"Maintenance task {task} failed: {e}", exc_info=True)
                results.append(MaintenanceTaskResult(
                    task=task, success=False, duration_ms=(time.monotonic() - started) * 1000, error=str(e)
                ))
                continue
            results.append(MaintenanceTaskResult(
                task=task, success=True, affected=affected, duration_ms=(time.monotonic() - started) * 1000
            ))

        failed = [r.task for r in results if not r.success]
        self.logger.info(
            f"Maintenance finished: {len(results) - len(failed)}/{len(results)} tasks succeeded",
            extra={"failed_tasks": [str(t) for t in failed]},
        )
        return results
