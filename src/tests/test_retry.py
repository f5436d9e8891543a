"""
Tests for retry backoff and pacing primitives.
"""

import random

import pytest

from ytdub.errors import JobCancelled
from ytdub.pacing import CancelToken, RequestPacer
from ytdub.retry import RetryPolicy, calculate_retry_delay


def test_default_delays_double_until_capped():
    """Test the default 1s/2x/10s schedule."""
    assert [calculate_retry_delay(n) for n in range(6)] == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]


def test_delay_is_non_decreasing_and_clamped():
    policy = RetryPolicy(max_retries=3, base_delay_sec=0.3, max_delay_sec=7.5, backoff_factor=1.7)
    delays = [calculate_retry_delay(n, policy) for n in range(200)]

    assert all(a <= b for a, b in zip(delays, delays[1:]))
    assert max(delays) == 7.5
    assert calculate_retry_delay(100_000, policy) == 7.5


def test_negative_attempt_treated_as_first():
    assert calculate_retry_delay(-3) == calculate_retry_delay(0)


def test_pacer_uses_injected_sleep_and_rng():
    delays: list[float] = []
    pacer = RequestPacer(sleep=delays.append, rng=random.Random(7))

    pacer.after_success()
    pacer.after_failure()
    waited = pacer.between_batches()

    assert delays[:2] == [0.2, 1.0]
    assert 3.0 <= waited <= 5.0
    assert delays[2] == waited


def test_cancel_token_interrupts_sleep():
    token = CancelToken()
    token.sleep(0)
    token.cancel()

    assert token.cancelled
    with pytest.raises(JobCancelled):
        token.sleep(30)
    with pytest.raises(JobCancelled):
        token.check()
