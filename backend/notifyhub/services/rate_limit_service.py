import logging

from notifyhub.core.clock import Clock
from notifyhub.db.repositories import RateLimitRepository
from notifyhub.domain.notification import NotificationValidationError
from notifyhub.domain.rate_limit import RateLimitDecision, window_start_for
from notifyhub.settings import Settings


class WorkspaceRateLimiter:
    """Fixed one-minute window counter per workspace.

    Every call counts, including rejected ones, so a workspace that keeps
    hammering the limit stays visible in the counter. Old windows are removed
    by the retention sweep.
    """

    def __init__(
        self,
        rate_limit_repository: RateLimitRepository,
        clock: Clock,
        settings: Settings,
        logger: logging.Logger,
    ) -> None:
        self.repository = rate_limit_repository
        self.clock = clock
        self.settings = settings
        self.logger = logger

    def effective_limit(self, limit_per_minute: int | None) -> int:
        if limit_per_minute is None:
            return self.settings.NOTIF_RATE_LIMIT_PER_MINUTE
        if limit_per_minute < 1:
            raise NotificationValidationError("Rate limit must be a positive number of notifications per minute")
        if limit_per_minute > self.settings.NOTIF_RATE_LIMIT_CEILING_PER_MINUTE:
            raise NotificationValidationError(
                f"Rate limit {limit_per_minute}/min exceeds the ceiling of "
                f"{self.settings.NOTIF_RATE_LIMIT_CEILING_PER_MINUTE}/min"
            )
        return limit_per_minute

    async def try_consume(self, workspace_id: str, limit_per_minute: int | None = None) -> RateLimitDecision:
        limit = self.effective_limit(limit_per_minute)
        window_start = window_start_for(self.clock.now())
        count = await self.repository.increment(workspace_id, window_start)
        decision = RateLimitDecision(
            allowed=count <= limit, current_count=count, limit=limit, window_start=window_start
        )
        if not decision.allowed:
            self.logger.warning(
                f"Workspace {workspace_id} over notification budget: {count}/{limit}",
                extra={"workspace_id": workspace_id, "count": count, "limit": limit},
            )
        return decision

    async def current_usage(self, workspace_id: str) -> int:
        return await self.repository.get_count(workspace_id, window_start_for(self.clock.now()))
