from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Optional, TypeVar

from explorer.core.activity import ActivityLog
from explorer.core.errors import RateLimitError, RetryBudgetExceeded

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STATUS_429 = re.compile(r"\b429\b")


def parse_retry_after(value: Any) -> Optional[float]:
    """
    Retry-After header value -> seconds. Accepts delta-seconds or an HTTP-date.
    """
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        pass
    try:
        when = parsedate_to_datetime(str(value))
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def is_rate_limit_error(exc: BaseException) -> bool:
    if isinstance(exc, RateLimitError):
        return True
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(getattr(exc, "response", None), "status_code", None)
    if status == 429:
        return True
    if getattr(exc, "code", None) == 429:
        return True
    msg = str(exc).lower()
    return "rate limit" in msg or bool(_STATUS_429.search(msg))


def _retry_hint(exc: BaseException) -> Optional[float]:
    hint = getattr(exc, "retry_after", None)
    if hint is None:
        headers = getattr(getattr(exc, "response", None), "headers", None)
        if headers is not None:
            hint = headers.get("Retry-After")
    return parse_retry_after(hint)


class RetryPolicy:
    """
    Retries throttled calls with exponential backoff.

    Two independent stop rules, both checked before every sleep:
    attempt count (max_attempts calls in total) and elapsed time
    (max_duration_sec since the first attempt, including the planned sleep).
    """

    def __init__(
        self,
        max_attempts: int = 5,
        max_duration_sec: float = 30.0,
        base_delay_sec: float = 0.5,
        max_delay_sec: float = 8.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        activity: Optional[ActivityLog] = None,
    ) -> None:
        self.max_attempts = max(1, int(max_attempts))
        self.max_duration_sec = max(0.0, float(max_duration_sec))
        self.base_delay_sec = max(0.0, float(base_delay_sec))
        self.max_delay_sec = max(0.0, float(max_delay_sec))
        self._sleep = sleep
        self._clock = clock
        self._activity = activity or ActivityLog(logger)

    def backoff_delay(self, attempt: int, exc: Optional[BaseException] = None) -> float:
        hint = _retry_hint(exc) if exc is not None else None
        if hint is not None:
            return max(0.0, hint)
        delay = min(self.base_delay_sec * (2 ** (attempt - 1)), self.max_delay_sec)
        return max(0.0, delay)

    def with_retry(
        self,
        call: Callable[[], T],
        label: str = "call",
        activity: Optional[ActivityLog] = None,
    ) -> T:
        activity = activity or self._activity
        started = self._clock()
        attempt = 0

        while True:
            attempt += 1
            try:
                return call()
            except Exception as e:
                if not is_rate_limit_error(e):
                    raise
                last_err = e

            if attempt >= self.max_attempts:
                activity.error(
                    f"{label}: rate limited, giving up after {attempt} attempt(s) "
                    f"(max_attempts={self.max_attempts}, max_duration_sec={self.max_duration_sec:g})"
                )
                raise RetryBudgetExceeded(
                    f"{label} still rate limited after {attempt} attempt(s)"
                ) from last_err

            delay = self.backoff_delay(attempt, last_err)
            elapsed = self._clock() - started
            if elapsed + delay > self.max_duration_sec:
                activity.error(
                    f"{label}: rate limited, retry time budget exhausted "
                    f"(elapsed {elapsed:.2f}s + delay {delay:.2f}s > max_duration_sec={self.max_duration_sec:g}, "
                    f"max_attempts={self.max_attempts})"
                )
                raise RetryBudgetExceeded(
                    f"{label} still rate limited after {elapsed:.2f}s"
                ) from last_err

            activity.warn(
                f"{label}: rate limited (attempt {attempt}/{self.max_attempts}), "
                f"retrying in {delay:.2f}s"
            )
            self._sleep(delay)
