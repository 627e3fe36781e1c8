import logging
from datetime import timedelta

from notifyhub.core.clock import Clock
from notifyhub.core.metrics import NotificationMetrics
from notifyhub.db.repositories import AuditRepository, NotificationRepository
from notifyhub.domain.audit import AuditLogEntry
from notifyhub.domain.enums import AuditAction, DeliveryStatus, NotificationChannel, NotificationPriority
from notifyhub.domain.notification import (
    DispatchRequest,
    DomainNotification,
    NotificationNotFoundError,
    NotificationValidationError,
)
from notifyhub.services.access_policy import WorkspaceAccessPolicy
from notifyhub.services.delivery_state_machine import DeliveryStateMachine
from notifyhub.services.preference_resolver import PreferenceOutcome, PreferenceResolver
from notifyhub.services.rate_limit_service import WorkspaceRateLimiter
from notifyhub.settings import Settings

MAX_TITLE_LENGTH = 500
MAX_BODY_LENGTH = 10_000
MARK_ALL_READ_BATCH_SIZE = 500


class NotificationService:
    """Fan-out of workspace events into per-recipient notifications, plus the acknowledge API.

    Dispatch only persists ``created`` rows; delivery happens later in the
    notification scheduler. Recipients skipped by preference or by the workspace
    rate limit are absent from the returned ids and never raise.
    """

    def __init__(
        self,
        notification_repository: NotificationRepository,
        audit_repository: AuditRepository,
        access_policy: WorkspaceAccessPolicy,
        preference_resolver: PreferenceResolver,
        rate_limiter: WorkspaceRateLimiter,
        state_machine: DeliveryStateMachine,
        clock: Clock,
        settings: Settings,
        metrics: NotificationMetrics,
        logger: logging.Logger,
    ) -> None:
        self.repository = notification_repository
        self.audit = audit_repository
        self.access = access_policy
        self.resolver = preference_resolver
        self.rate_limiter = rate_limiter
        self.state_machine = state_machine
        self.clock = clock
        self.settings = settings
        self.metrics = metrics
        self.logger = logger

    async def dispatch(self, request: DispatchRequest) -> list[str]:
        self._validate(request)
        self.rate_limiter.effective_limit(request.rate_limit_per_minute)
        if request.actor_id is not None:
            await self.access.ensure_member(request.actor_id, request.workspace_id)

        recipients = await self.access.resolve_recipients(
            request.workspace_id, request.recipients, request.exclude
        )
        if not recipients:
            return []

        decision = await self.rate_limiter.try_consume(request.workspace_id, request.rate_limit_per_minute)
        if not decision.allowed and request.priority != NotificationPriority.URGENT:
            await self._record_rate_limited(request, decision.current_count, decision.limit, len(recipients))
            return []

        now = self.clock.now()
        expires_at = request.expires_at
        if expires_at is None and self.settings.NOTIF_DEFAULT_TTL_DAYS:
            expires_at = now + timedelta(days=self.settings.NOTIF_DEFAULT_TTL_DAYS)
        linked = request.linked_entity

        created: list[str] = []
        for user_id in recipients:
            preference = await self.resolver.evaluate(
                user_id, request.workspace_id, request.event_type, NotificationChannel.IN_APP, request.priority
            )
            if preference.outcome == PreferenceOutcome.DENY:
                self.metrics.record_skipped(preference.reason)
                continue

            notification = DomainNotification(
                user_id=user_id,
                workspace_id=request.workspace_id,
                event_type=request.event_type,
                title=request.title,
                body=request.body,
                created_at=now,
                priority=request.priority,
                entity_type=linked.entity_type if linked else None,
                entity_id=linked.entity_id if linked else None,
                action_url=request.action_url,
                metadata=dict(request.metadata),
                expires_at=expires_at,
            )
            await self.repository.insert_notification(notification)
            await self.audit.append(AuditLogEntry(
                action=AuditAction.CREATED,
                workspace_id=request.workspace_id,
                created_at=now,
                notification_id=notification.notification_id,
                user_id=user_id,
                new_status=DeliveryStatus.CREATED,
                detail={"event_type": request.event_type, "priority": str(request.priority)},
            ))
            created.append(notification.notification_id)

        if created:
            self.metrics.record_created(request.workspace_id, request.priority, len(created))
        self.logger.info(
            f"Dispatched {request.event_type} to {len(created)}/{len(recipients)} recipients",
            extra={
                "workspace_id": request.workspace_id,
                "event_type": request.event_type,
                "priority": str(request.priority),
                "created": len(created),
                "candidates": len(recipients),
            },
        )
        return created

    async def mark_seen(self, notification_id: str, user_id: str) -> bool:
        result = await self.state_machine.mark_seen(notification_id, user_id)
        return result.changed

    async def mark_acknowledged(self, notification_id: str, user_id: str) -> bool:
        result = await self.state_machine.mark_acknowledged(notification_id, user_id)
        return result.changed

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        result = await self.state_machine.mark_read(notification_id, user_id)
        return result.changed

    async def mark_all_read(self, user_id: str, workspace_id: str) -> int:
        """Mark every unread notification of the user in the workspace as read; returns how many changed.

        Works in batches of ``MARK_ALL_READ_BATCH_SIZE`` ids so a large inbox is never loaded at once.
        """
        changed = 0
        while True:
            batch = await self.repository.find_unread_ids(user_id, workspace_id, limit=MARK_ALL_READ_BATCH_SIZE)
            if not batch:
                return changed
            progressed = False
            for notification_id in batch:
                try:
                    result = await self.state_machine.mark_read(notification_id, user_id)
                except NotificationNotFoundError:
                    # Purged by the expiry sweep between listing and marking.
                    progressed = True
                    continue
                changed += int(result.changed)
                progressed = progressed or result.changed
            if not progressed:
                return changed

    async def delete_notification(self, notification_id: str, user_id: str) -> None:
        deleted = await self.repository.delete_notification(notification_id, user_id)
        if deleted is None:
            raise NotificationNotFoundError(notification_id)
        await self.audit.append(AuditLogEntry(
            action=AuditAction.DELETED,
            workspace_id=deleted.workspace_id,
            created_at=self.clock.now(),
            notification_id=notification_id,
            user_id=user_id,
            previous_status=deleted.delivery_status,
            detail={"reason": "user", "read": deleted.read},
        ))

    async def get_unread_count(self, user_id: str, workspace_id: str | None = None) -> int:
        if workspace_id is not None:
            await self.access.ensure_member(user_id, workspace_id)
        return await self.repository.count_unread(user_id, workspace_id)

    async def get_audit_trail(self, notification_id: str, user_id: str) -> list[AuditLogEntry]:
        notification = await self.repository.get_notification(notification_id, user_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        return await self.audit.list_for_notification(notification_id)

    async def _record_rate_limited(self, request: DispatchRequest, count: int, limit: int, recipients: int) -> None:
        self.metrics.record_rate_limited(request.workspace_id)
        await self.audit.append(AuditLogEntry(
            action=AuditAction.RATE_LIMITED,
            workspace_id=request.workspace_id,
            created_at=self.clock.now(),
            detail={
                "event_type": request.event_type,
                "priority": str(request.priority),
                "count": count,
                "limit": limit,
                "recipients": recipients,
            },
        ))
        self.logger.warning(
            f"Dropped {request.event_type} for workspace {request.workspace_id}: rate limit {count}/{limit}",
            extra={"workspace_id": request.workspace_id, "event_type": request.event_type},
        )

    @staticmethod
    def _validate(request: DispatchRequest) -> None:
        if not request.workspace_id or not request.workspace_id.strip():
            raise NotificationValidationError("workspace_id is required")
        if not request.event_type or not request.event_type.strip():
            raise NotificationValidationError("event_type is required")
        if not request.title or not request.title.strip():
            raise NotificationValidationError("title is required")
        if len(request.title) > MAX_TITLE_LENGTH:
            raise NotificationValidationError(f"title exceeds {MAX_TITLE_LENGTH} characters")
        if len(request.body) > MAX_BODY_LENGTH:
            raise NotificationValidationError(f"body exceeds {MAX_BODY_LENGTH} characters")
        if not isinstance(request.priority, NotificationPriority):
            try:
                request.priority = NotificationPriority(request.priority)
            except ValueError as e:
                raise NotificationValidationError(f"Unknown priority '{request.priority}'") from e
        if request.recipients is not None and any(not r for r in request.recipients):
            raise NotificationValidationError("recipients must be non-empty user ids")
        if request.expires_at is not None and request.expires_at.tzinfo is None:
            raise NotificationValidationError("expires_at must be timezone-aware")
