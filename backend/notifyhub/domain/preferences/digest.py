from datetime import UTC, datetime, timedelta

from notifyhub.domain.enums import EmailDigestFrequency
from notifyhub.domain.preferences.quiet_hours import parse_time_of_day, resolve_timezone

_PERIODS: dict[EmailDigestFrequency, timedelta] = {
    EmailDigestFrequency.DAILY: timedelta(days=1),
    EmailDigestFrequency.WEEKLY: timedelta(days=7),
}


def digest_period(frequency: EmailDigestFrequency) -> timedelta:
    return _PERIODS[frequency]


def latest_digest_slot(
        now: datetime,
        frequency: EmailDigestFrequency,
        digest_time: str,
        digest_day: int,
        timezone: str,
) -> datetime | None:
    """Most recent scheduled send at or before ``now``, in UTC.

    Daily digests go out at ``digest_time`` local time every day; weekly ones at
    ``digest_time`` on ISO weekday ``digest_day`` (1 = Monday). Returns None for
    frequencies that have no digest.
    """
    if frequency not in _PERIODS:
        return None
    zone = resolve_timezone(timezone)
    at = parse_time_of_day(digest_time)
    local_now = now.astimezone(zone)

    slot = datetime.combine(local_now.date(), at, tzinfo=zone)
    if frequency == EmailDigestFrequency.WEEKLY:
        slot -= timedelta(days=(local_now.isoweekday() - digest_day) % 7)
    if slot > local_now:
        slot -= _PERIODS[frequency]
    return slot.astimezone(UTC)
