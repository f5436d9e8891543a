"""
Exponential backoff shared by the transcript and translation stages.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff settings; delays are in seconds."""

    max_retries: int = 5
    base_delay_sec: float = 1.0
    max_delay_sec: float = 10.0
    backoff_factor: float = 2.0

    def delay_for(self, attempt: int) -> float:
        return calculate_retry_delay(attempt, self)


DEFAULT_RETRY_POLICY = RetryPolicy()


def calculate_retry_delay(attempt: int, policy: RetryPolicy = DEFAULT_RETRY_POLICY) -> float:
    """Delay before retry number `attempt` (0-indexed), capped at max_delay_sec."""
    attempt = max(0, int(attempt))
    try:
        delay = policy.base_delay_sec * (policy.backoff_factor**attempt)
    except OverflowError:
        return policy.max_delay_sec
    return min(policy.max_delay_sec, delay)
