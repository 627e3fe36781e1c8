import logging
from dataclasses import dataclass
from datetime import datetime

from notifyhub.core.clock import Clock
from notifyhub.core.utils import StringEnum
from notifyhub.db.repositories import PreferenceRepository
from notifyhub.domain.enums import EmailDigestFrequency, NotificationChannel, NotificationPriority, PreferenceSource
from notifyhub.domain.notification import preference_flag_for
from notifyhub.domain.preferences import (
    DomainEffectivePreferences,
    DomainNotificationPreferences,
    quiet_window_end,
)
from notifyhub.settings import Settings

QUIET_HOURS_PRIORITIES = (NotificationPriority.LOW, NotificationPriority.NORMAL)


class PreferenceOutcome(StringEnum):
    ALLOW = "allow"
    DENY = "deny"
    DEFER = "defer"


@dataclass(frozen=True)
class PreferenceDecision:
    outcome: PreferenceOutcome
    reason: str = ""
    defer_until: datetime | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome == PreferenceOutcome.ALLOW


class PreferenceResolver:
    """Decides whether a user should hear about an event on a given channel.

    Lookup falls back from the workspace row to the user's global row to the
    built-in defaults, which allow every category except sync updates.
    Urgent events skip the channel toggle and quiet hours; whether they also skip an
    explicit category opt-out is NOTIF_URGENT_RESPECTS_CATEGORY_OPT_OUT.
    """

    def __init__(
        self,
        preference_repository: PreferenceRepository,
        clock: Clock,
        settings: Settings,
        logger: logging.Logger,
    ) -> None:
        self.repository = preference_repository
        self.clock = clock
        self.settings = settings
        self.logger = logger

    async def effective_preferences(self, user_id: str, workspace_id: str | None) -> DomainEffectivePreferences:
        if workspace_id is not None:
            scoped = await self.repository.get_preferences(user_id, workspace_id)
            if scoped is not None:
                return DomainEffectivePreferences(preferences=scoped, source=PreferenceSource.WORKSPACE)

        global_row = await self.repository.get_preferences(user_id, None)
        if global_row is not None:
            return DomainEffectivePreferences(preferences=global_row, source=PreferenceSource.GLOBAL)

        return DomainEffectivePreferences(
            preferences=DomainNotificationPreferences(user_id=user_id, workspace_id=workspace_id),
            source=PreferenceSource.DEFAULT,
        )

    async def evaluate(
        self,
        user_id: str,
        workspace_id: str,
        event_type: str,
        channel: NotificationChannel,
        priority: NotificationPriority = NotificationPriority.NORMAL,
    ) -> PreferenceDecision:
        effective = await self.effective_preferences(user_id, workspace_id)
        return self.decide(effective.preferences, event_type, channel, priority, self.clock.now())

    async def should_notify(
        self,
        user_id: str,
        workspace_id: str,
        event_type: str,
        channel: NotificationChannel,
        priority: NotificationPriority = NotificationPriority.NORMAL,
    ) -> bool:
        decision = await self.evaluate(user_id, workspace_id, event_type, channel, priority)
        return decision.allowed

    def decide(
        self,
        preferences: DomainNotificationPreferences,
        event_type: str,
        channel: NotificationChannel,
        priority: NotificationPriority,
        now: datetime,
    ) -> PreferenceDecision:
        urgent = priority == NotificationPriority.URGENT

        if not urgent and not self._channel_enabled(preferences, channel):
            return PreferenceDecision(PreferenceOutcome.DENY, reason="channel_disabled")

        flag = preference_flag_for(event_type)
        if flag is not None and not preferences.flag(flag):
            if not urgent or self.settings.NOTIF_URGENT_RESPECTS_CATEGORY_OPT_OUT:
                return PreferenceDecision(PreferenceOutcome.DENY, reason=f"opted_out:{flag}")

        if (
            channel == NotificationChannel.IN_APP
            and preferences.quiet_hours_enabled
            and priority in QUIET_HOURS_PRIORITIES
        ):
            closes_at = quiet_window_end(
                now, preferences.quiet_hours_start, preferences.quiet_hours_end, preferences.timezone
            )
            if closes_at is not None:
                return PreferenceDecision(PreferenceOutcome.DEFER, reason="quiet_hours", defer_until=closes_at)

        return PreferenceDecision(PreferenceOutcome.ALLOW)

    @staticmethod
    def _channel_enabled(preferences: DomainNotificationPreferences, channel: NotificationChannel) -> bool:
        if channel == NotificationChannel.IN_APP:
            return preferences.in_app_enabled
        if channel == NotificationChannel.EMAIL:
            # Daily and weekly subscribers hear by digest instead.
            return preferences.email_enabled and preferences.email_frequency == EmailDigestFrequency.INSTANT
        return True
