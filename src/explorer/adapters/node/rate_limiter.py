from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Optional, Tuple, TypeVar

from explorer.core.activity import ActivityLog

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_REQUESTS_PER_SEC = 0.01


class TokenBucketRateLimiter:
    """
    Token bucket gate shared by every call made through one node adapter.

    - capacity = requests_per_sec (at least one token), refilled continuously
    - at most max_concurrency calls in flight
    - waiters are served strictly FIFO

    All state lives under one condition variable; refill is a pure function
    of elapsed time and admission a pure function of (tokens, active).
    """

    def __init__(
        self,
        requests_per_sec: float,
        max_concurrency: int = 1,
        clock: Callable[[], float] = time.monotonic,
        activity: Optional[ActivityLog] = None,
    ) -> None:
        self._rate = max(MIN_REQUESTS_PER_SEC, float(requests_per_sec))
        self._capacity = max(1.0, self._rate)
        self._max_concurrency = max(1, int(max_concurrency))
        self._clock = clock
        self._activity = activity or ActivityLog(logger)

        self._tokens = self._capacity
        self._last_refill = clock()
        self._active = 0
        self._queue: Deque[object] = deque()
        self._cond = threading.Condition()

    @property
    def active(self) -> int:
        with self._cond:
            return self._active

    def schedule(
        self,
        call: Callable[[], T],
        label: str = "call",
        activity: Optional[ActivityLog] = None,
    ) -> T:
        self._acquire(label, activity or self._activity)
        try:
            return call()
        finally:
            self._release()

    # ---------- internal ----------

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
            self._last_refill = now

    def _can_run(self) -> bool:
        return self._active < self._max_concurrency and self._tokens >= 1.0

    def _start(self) -> None:
        self._tokens -= 1.0
        self._active += 1

    def _next_token_in(self) -> Optional[float]:
        if self._tokens >= 1.0:
            # only a completion can unblock us
            return None
        return (1.0 - self._tokens) / self._rate

    def _throttle_reason(self) -> Tuple[str, Optional[float]]:
        concurrency_bound = self._active >= self._max_concurrency
        # one token per queued waiter, this call included
        rate_bound = self._tokens < len(self._queue)
        if concurrency_bound and rate_bound:
            reason = "concurrency+rate"
        elif concurrency_bound:
            # depends on when a running call finishes
            return "concurrency", None
        else:
            reason = "rate"
        deficit = len(self._queue) - self._tokens
        return reason, max(0.0, deficit / self._rate)

    def _acquire(self, label: str, activity: ActivityLog) -> None:
        ticket = object()
        with self._cond:
            self._refill()
            if not self._queue and self._can_run():
                self._start()
                return
            self._queue.append(ticket)
            reason, wait = self._throttle_reason()

        if wait is None:
            activity.info(f"Throttling {label}: {reason}-bound, waiting for a free slot")
        else:
            activity.info(f"Throttling {label}: {reason}-bound, estimated wait {wait:.2f}s")

        with self._cond:
            try:
                while True:
                    self._refill()
                    if self._queue[0] is ticket and self._can_run():
                        self._queue.popleft()
                        self._start()
                        # the new head may be runnable too
                        self._cond.notify_all()
                        return
                    self._cond.wait(timeout=self._next_token_in())
            except BaseException:
                if ticket in self._queue:
                    self._queue.remove(ticket)
                    self._cond.notify_all()
                raise

    def _release(self) -> None:
        with self._cond:
            self._active -= 1
            self._cond.notify_all()
