from notifyhub.domain.rate_limit.models import RateLimitDecision, window_start_for

__all__ = ["RateLimitDecision", "window_start_for"]
