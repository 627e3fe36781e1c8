from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any

from notifyhub.domain.enums import EmailDigestFrequency, PreferenceSource


@dataclass
class DomainNotificationPreferences:
    """Per (user, workspace) settings; ``workspace_id=None`` is the user's global row."""

    user_id: str
    workspace_id: str | None = None

    in_app_enabled: bool = True
    email_enabled: bool = True
    email_frequency: EmailDigestFrequency = EmailDigestFrequency.INSTANT
    email_digest_time: str = "09:00"
    email_digest_day: int = 1

    notify_mentions: bool = True
    notify_comments: bool = True
    notify_task_assignments: bool = True
    notify_task_updates: bool = True
    notify_task_due_soon: bool = True
    notify_task_overdue: bool = True
    notify_deal_updates: bool = True
    notify_deal_won: bool = True
    notify_deal_lost: bool = True
    notify_document_shares: bool = True
    notify_team_updates: bool = True
    notify_achievements: bool = True
    notify_agent_updates: bool = True
    notify_market_briefs: bool = True
    notify_sync_updates: bool = False

    quiet_hours_enabled: bool = False
    quiet_hours_start: str = "22:00"
    quiet_hours_end: str = "08:00"
    timezone: str = "UTC"

    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_digest_at: datetime | None = None

    def flag(self, name: str) -> bool:
        return bool(getattr(self, name))


@dataclass
class DomainPreferencesUpdate:
    """Partial update; None means leave unchanged."""

    in_app_enabled: bool | None = None
    email_enabled: bool | None = None
    email_frequency: EmailDigestFrequency | None = None
    email_digest_time: str | None = None
    email_digest_day: int | None = None

    notify_mentions: bool | None = None
    notify_comments: bool | None = None
    notify_task_assignments: bool | None = None
    notify_task_updates: bool | None = None
    notify_task_due_soon: bool | None = None
    notify_task_overdue: bool | None = None
    notify_deal_updates: bool | None = None
    notify_deal_won: bool | None = None
    notify_deal_lost: bool | None = None
    notify_document_shares: bool | None = None
    notify_team_updates: bool | None = None
    notify_achievements: bool | None = None
    notify_agent_updates: bool | None = None
    notify_market_briefs: bool | None = None
    notify_sync_updates: bool | None = None

    quiet_hours_enabled: bool | None = None
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None
    timezone: str | None = None

    def changes(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass
class DomainEffectivePreferences:
    preferences: DomainNotificationPreferences
    source: PreferenceSource = PreferenceSource.DEFAULT
