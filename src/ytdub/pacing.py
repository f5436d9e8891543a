"""
Cancellation and request pacing primitives.

Every wait in the pipeline goes through a CancelToken so a cancelled job stops
sleeping immediately, and all translation pacing goes through RequestPacer so
tests can record the delays instead of waiting them out.
"""

import logging
import random
import threading
from collections.abc import Callable

from .errors import JobCancelled

logger = logging.getLogger("ytdub")

Sleeper = Callable[[float], None]


class CancelToken:
    """Job-scoped cancellation flag with interruptible sleeps."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        """Raise JobCancelled if the token has fired."""
        if self._event.is_set():
            raise JobCancelled("Job was cancelled")

    def sleep(self, seconds: float) -> None:
        """Sleep up to `seconds`, waking early (and raising) on cancellation."""
        if seconds > 0 and self._event.wait(seconds):
            raise JobCancelled("Job was cancelled")
        self.check()


class RequestPacer:
    """Gate that spaces out sequential calls to a rate-limited service.

    success_delay follows every successful call, failure_delay follows every
    failed one, and a random delay in batch_delay_range separates batches.
    """

    def __init__(
        self,
        success_delay: float = 0.2,
        failure_delay: float = 1.0,
        batch_delay_range: tuple[float, float] = (3.0, 5.0),
        sleep: Sleeper | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.success_delay = success_delay
        self.failure_delay = failure_delay
        self.batch_delay_range = batch_delay_range
        self._sleep = sleep or CancelToken().sleep
        self._rng = rng or random.Random()

    def after_success(self) -> None:
        self._sleep(self.success_delay)

    def after_failure(self) -> None:
        self._sleep(self.failure_delay)

    def between_batches(self) -> float:
        low, high = self.batch_delay_range
        delay = self._rng.uniform(low, high)
        logger.info("Waiting %ds before next batch to avoid rate limiting...", round(delay))
        self._sleep(delay)
        return delay
