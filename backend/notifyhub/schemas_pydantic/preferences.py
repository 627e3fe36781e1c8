from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from notifyhub.domain.enums import EmailDigestFrequency, PreferenceSource

_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class NotificationPreferencesResponse(BaseModel):
    """Stored preference row for one (user, workspace) scope"""
    user_id: str
    workspace_id: str | None = None

    in_app_enabled: bool
    email_enabled: bool
    email_frequency: EmailDigestFrequency
    email_digest_time: str
    email_digest_day: int

    notify_mentions: bool
    notify_comments: bool
    notify_task_assignments: bool
    notify_task_updates: bool
    notify_task_due_soon: bool
    notify_task_overdue: bool
    notify_deal_updates: bool
    notify_deal_won: bool
    notify_deal_lost: bool
    notify_document_shares: bool
    notify_team_updates: bool
    notify_achievements: bool
    notify_agent_updates: bool
    notify_market_briefs: bool
    notify_sync_updates: bool

    quiet_hours_enabled: bool
    quiet_hours_start: str
    quiet_hours_end: str
    timezone: str

    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_digest_at: datetime | None = None

    model_config = ConfigDict(
        from_attributes=True
    )


class EffectivePreferencesResponse(BaseModel):
    source: PreferenceSource
    preferences: NotificationPreferencesResponse

    model_config = ConfigDict(
        from_attributes=True
    )


class NotificationPreferencesUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value"""
    in_app_enabled: bool | None = None
    email_enabled: bool | None = None
    email_frequency: EmailDigestFrequency | None = None
    email_digest_time: str | None = Field(None, pattern=_TIME_PATTERN)
    email_digest_day: int | None = Field(None, ge=1, le=7)

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
    quiet_hours_start: str | None = Field(None, pattern=_TIME_PATTERN)
    quiet_hours_end: str | None = Field(None, pattern=_TIME_PATTERN)
    timezone: str | None = Field(None, min_length=1)
