"""Hourly generation quota persisted in local storage.

A fixed-window counter: the first request opens a one-hour window and
every request inside it is appended to the stored list.  Bursts across a
window boundary are not smoothed.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable

from blog_studio.content.models import RateLimitStatus
from blog_studio.content.storage import LocalStorage, StorageError

logger = logging.getLogger(__name__)

RATE_LIMIT_KEY = "ai-blog-studio-rate-limit"
WINDOW_MS = 60 * 60 * 1000
DEFAULT_MAX_REQUESTS = 10


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateLimiter:
    """Caps generation requests to ``max_requests`` per window.

    Args:
        storage: Where the window state is kept.
        max_requests: Requests allowed per window.
        window_ms: Window length in milliseconds.
        clock: Returns the current time in epoch milliseconds.
    """

    def __init__(
        self,
        storage: LocalStorage,
        *,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = WINDOW_MS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._storage = storage
        self.max_requests = max_requests
        self._window_ms = window_ms
        self._clock = clock

    def _full_quota(self, now: int) -> RateLimitStatus:
        return RateLimitStatus(
            remaining=self.max_requests,
            reset_time=now + self._window_ms,
            is_limited=False,
        )

    def _read_state(self) -> tuple[list[int], int] | None:
        raw = self._storage.get_item(RATE_LIMIT_KEY)
        if not raw:
            return None
        state = json.loads(raw)
        return list(state["requests"]), int(state["resetTime"])

    def _write_state(self, requests: list[int], reset_time: int) -> None:
        self._storage.set_item(
            RATE_LIMIT_KEY,
            json.dumps({"requests": requests, "resetTime": reset_time}),
        )

    def check_limit(self) -> RateLimitStatus:
        """Return the remaining quota for the current window."""
        now = self._clock()
        try:
            state = self._read_state()
        except (StorageError, ValueError, KeyError, TypeError):
            logger.warning("Unreadable rate-limit state, assuming full quota", exc_info=True)
            return self._full_quota(now)

        if state is None:
            return self._full_quota(now)

        requests, reset_time = state
        if now > reset_time:
            return self._full_quota(now)

        remaining = max(0, self.max_requests - len(requests))
        return RateLimitStatus(
            remaining=remaining,
            reset_time=reset_time,
            is_limited=remaining == 0,
        )

    def record_request(self) -> None:
        """Count one request, opening a new window if the old one elapsed."""
        now = self._clock()
        try:
            state = self._read_state()
            if state is None or now > state[1]:
                self._write_state([now], now + self._window_ms)
                return
            requests, reset_time = state
            requests.append(now)
            self._write_state(requests, reset_time)
        except (StorageError, ValueError, KeyError, TypeError):
            logger.error("Rate limiter error", exc_info=True)
