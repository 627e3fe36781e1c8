from datetime import UTC, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from notifyhub.domain.preferences.exceptions import PreferencesValidationError


def parse_time_of_day(value: str) -> time:
    try:
        parsed = time.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise PreferencesValidationError(f"Invalid time of day '{value}', expected HH:MM") from e
    if parsed.tzinfo is not None:
        raise PreferencesValidationError(f"Time of day '{value}' must not carry an offset")
    return parsed


def resolve_timezone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise PreferencesValidationError(f"Unknown timezone '{name}'") from e


def in_quiet_window(local: time, start: time, end: time) -> bool:
    """Half-open [start, end); wraps past midnight when start > end, empty when equal."""
    if start == end:
        return False
    if start < end:
        return start <= local < end
    return local >= start or local < end


def quiet_window_end(now: datetime, start: str, end: str, timezone: str) -> datetime | None:
    """Return when the quiet window containing ``now`` closes, or None if ``now`` is outside it."""
    zone = resolve_timezone(timezone)
    start_t, end_t = parse_time_of_day(start), parse_time_of_day(end)
    local_now = now.astimezone(zone)
    local_t = local_now.time().replace(tzinfo=None)
    if not in_quiet_window(local_t, start_t, end_t):
        return None

    closes = datetime.combine(local_now.date(), end_t, tzinfo=zone)
    if closes <= local_now:
        closes += timedelta(days=1)
    return closes.astimezone(UTC)
