from notifyhub.domain.preferences.digest import digest_period, latest_digest_slot
from notifyhub.domain.preferences.exceptions import PreferencesValidationError
from notifyhub.domain.preferences.models import (
    DomainEffectivePreferences,
    DomainNotificationPreferences,
    DomainPreferencesUpdate,
)
from notifyhub.domain.preferences.quiet_hours import (
    in_quiet_window,
    parse_time_of_day,
    quiet_window_end,
    resolve_timezone,
)

__all__ = [
    "DomainEffectivePreferences",
    "DomainNotificationPreferences",
    "DomainPreferencesUpdate",
    "PreferencesValidationError",
    "digest_period",
    "in_quiet_window",
    "latest_digest_slot",
    "parse_time_of_day",
    "quiet_window_end",
    "resolve_timezone",
]
