from dataclasses import dataclass
from datetime import datetime


def window_start_for(now: datetime) -> datetime:
    """Floor ``now`` to its one-minute window."""
    return now.replace(second=0, microsecond=0)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    current_count: int
    limit: int
    window_start: datetime
