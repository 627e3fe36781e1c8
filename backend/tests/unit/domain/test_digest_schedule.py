from datetime import UTC, datetime

import pytest

from notifyhub.domain.enums import EmailDigestFrequency
from notifyhub.domain.preferences import PreferencesValidationError, latest_digest_slot

pytestmark = pytest.mark.unit

# 2025-03-10 is a Monday
MONDAY_NOON = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


class TestDailySlot:
    def test_today_once_the_time_has_passed(self) -> None:
        slot = latest_digest_slot(MONDAY_NOON, EmailDigestFrequency.DAILY, "09:00", 1, "UTC")
        assert slot == datetime(2025, 3, 10, 9, 0, tzinfo=UTC)

    def test_yesterday_before_the_time(self) -> None:
        slot = latest_digest_slot(MONDAY_NOON, EmailDigestFrequency.DAILY, "13:00", 1, "UTC")
        assert slot == datetime(2025, 3, 9, 13, 0, tzinfo=UTC)

    def test_exact_time_counts_as_due(self) -> None:
        slot = latest_digest_slot(MONDAY_NOON, EmailDigestFrequency.DAILY, "12:00", 1, "UTC")
        assert slot == MONDAY_NOON

    def test_digest_time_is_local_to_the_user(self) -> None:
        # Berlin is UTC+1 until the end of March
        slot = latest_digest_slot(MONDAY_NOON, EmailDigestFrequency.DAILY, "09:00", 1, "Europe/Berlin")
        assert slot == datetime(2025, 3, 10, 8, 0, tzinfo=UTC)


class TestWeeklySlot:
    @pytest.mark.parametrize(
        ("digest_day", "expected"),
        [
            (1, datetime(2025, 3, 10, 9, 0, tzinfo=UTC)),
            (5, datetime(2025, 3, 7, 9, 0, tzinfo=UTC)),
            (7, datetime(2025, 3, 9, 9, 0, tzinfo=UTC)),
        ],
        ids=["monday", "friday", "sunday"],
    )
    def test_most_recent_digest_day(self, digest_day: int, expected: datetime) -> None:
        assert latest_digest_slot(MONDAY_NOON, EmailDigestFrequency.WEEKLY, "09:00", digest_day, "UTC") == expected

    def test_digest_day_before_the_time_falls_back_a_week(self) -> None:
        slot = latest_digest_slot(MONDAY_NOON, EmailDigestFrequency.WEEKLY, "18:00", 1, "UTC")
        assert slot == datetime(2025, 3, 3, 18, 0, tzinfo=UTC)


@pytest.mark.parametrize("frequency", [EmailDigestFrequency.INSTANT, EmailDigestFrequency.NEVER])
def test_no_slot_without_a_digest_frequency(frequency: EmailDigestFrequency) -> None:
    assert latest_digest_slot(MONDAY_NOON, frequency, "09:00", 1, "UTC") is None


def test_invalid_timezone_is_rejected() -> None:
    with pytest.raises(PreferencesValidationError):
        latest_digest_slot(MONDAY_NOON, EmailDigestFrequency.DAILY, "09:00", 1, "Mars/Olympus")
