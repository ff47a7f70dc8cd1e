"""Retry-with-backoff policy shared by thumbnail fetches."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from .errors import is_transient

log = logging.getLogger(__name__)


def exponential_backoff(attempt: int) -> float:
    return float(2 ** attempt)


@dataclass
class RetryPolicy:
    """Call a function up to `max_attempts` times.

    Sleeps `backoff(attempt)` seconds between attempts (attempts count from 1)
    and only retries errors accepted by `retry_on`. The last error is re-raised
    once attempts are exhausted.
    """

    max_attempts: int = 3
    backoff: Callable[[int], float] = exponential_backoff
    retry_on: Callable[[BaseException], bool] = is_transient
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def call(self, fn: Callable[..., Any], *args, **kw) -> Any:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return fn(*args, **kw)
            except Exception as e:
                if attempt >= self.max_attempts or not self.retry_on(e):
                    raise
                delay = self.backoff(attempt)
                log.info("Attempt %d/%d failed (%s); retrying in %.1fs",
                         attempt, self.max_attempts, e, delay)
                self.sleep(delay)
        raise RuntimeError("unreachable")
