import logging
from typing import Any

from notifyhub.core.clock import Clock
from notifyhub.db.repositories import PreferenceRepository
from notifyhub.domain.preferences import (
    DomainEffectivePreferences,
    DomainNotificationPreferences,
    DomainPreferencesUpdate,
    PreferencesValidationError,
    parse_time_of_day,
    resolve_timezone,
)
from notifyhub.services.access_policy import WorkspaceAccessPolicy
from notifyhub.services.preference_resolver import PreferenceResolver


class NotificationPreferencesService:
    def __init__(
        self,
        preference_repository: PreferenceRepository,
        preference_resolver: PreferenceResolver,
        access_policy: WorkspaceAccessPolicy,
        clock: Clock,
        logger: logging.Logger,
    ) -> None:
        self.repository = preference_repository
        self.resolver = preference_resolver
        self.access = access_policy
        self.clock = clock
        self.logger = logger

    async def get_effective_preferences(self, user_id: str, workspace_id: str | None) -> DomainEffectivePreferences:
        """Resolved settings (workspace, else global, else defaults); never writes."""
        if workspace_id is not None:
            await self.access.ensure_member(user_id, workspace_id)
        return await self.resolver.effective_preferences(user_id, workspace_id)

    async def get_preferences(self, user_id: str, workspace_id: str | None) -> DomainNotificationPreferences:
        """The user's own row for this scope, created with defaults on first access."""
        if workspace_id is not None:
            await self.access.ensure_member(user_id, workspace_id)
        return await self.repository.get_or_create(user_id, workspace_id, self.clock.now())

    async def update_preferences(
            self, user_id: str, workspace_id: str | None, update: DomainPreferencesUpdate
    ) -> DomainNotificationPreferences:
        changes = self._validated_changes(update)
        if workspace_id is not None:
            await self.access.ensure_member(user_id, workspace_id)

        now = self.clock.now()
        current = await self.repository.get_or_create(user_id, workspace_id, now)
        if not changes:
            return current

        updated = await self.repository.update_preferences(user_id, workspace_id, changes, now)
        if updated is None:
            raise PreferencesValidationError("Preferences row disappeared during update")
        self.logger.info(
            "Notification preferences updated",
            extra={"user_id": user_id, "workspace_id": workspace_id, "fields": sorted(changes)},
        )
        return updated

    @staticmethod
    def _validated_changes(update: DomainPreferencesUpdate) -> dict[str, Any]:
        changes = update.changes()
        for key in ("quiet_hours_start", "quiet_hours_end", "email_digest_time"):
            if key in changes:
                parse_time_of_day(changes[key])
        if "timezone" in changes:
            resolve_timezone(changes["timezone"])
        day = changes.get("email_digest_day")
        if day is not None and not 1 <= day <= 7:
            raise PreferencesValidationError("email_digest_day must be between 1 (Monday) and 7 (Sunday)")
        if "email_frequency" in changes:
            changes["email_frequency"] = str(changes["email_frequency"])
        return changes
