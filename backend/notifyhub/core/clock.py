from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    """Source of the current time for every time-dependent decision in the engine."""

    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        # Mongo keeps millisecond precision; truncating here keeps cursors and
        # compare-and-set filters equal to what was stored.
        current = datetime.now(UTC)
        return current.replace(microsecond=current.microsecond // 1000 * 1000)
