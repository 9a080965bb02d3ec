"""In-process fixed-window limiter for outbound verification calls."""

from __future__ import annotations

from datetime import datetime, timedelta

from alive_checker.clock import Clock


class RateLimitExceededError(RuntimeError):
    """Raised when a permit is requested after the window is exhausted."""

    def __init__(self, *, permit_limit: int, retry_after: timedelta) -> None:
        super().__init__(
            f"Rate limit of {permit_limit} requests per window reached; "
            f"window resets in {int(retry_after.total_seconds())}s.",
        )
        self.permit_limit = permit_limit
        self.retry_after = retry_after


class FixedWindowRateLimiter:
    """Grants ``permit_limit`` permits per window; never waits or queues callers."""

    def __init__(self, *, permit_limit: int, window: timedelta, clock: Clock) -> None:
        if permit_limit <= 0:
            raise ValueError("permit_limit must be > 0")
        if window <= timedelta(0):
            raise ValueError("window must be positive")
        self.permit_limit = permit_limit
        self.window = window
        self.clock = clock
        self._window_started_at: datetime | None = None
        self._used = 0

    @property
    def remaining(self) -> int:
        self._roll_window(self.clock.now())
        return self.permit_limit - self._used

    def acquire(self) -> None:
        now = self.clock.now()
        self._roll_window(now)
        if self._used >= self.permit_limit:
            started_at = self._window_started_at or now
            raise RateLimitExceededError(
                permit_limit=self.permit_limit,
                retry_after=started_at + self.window - now,
            )
        self._used += 1

    def _roll_window(self, now: datetime) -> None:
        if self._window_started_at is None or now >= self._window_started_at + self.window:
            self._window_started_at = now
            self._used = 0
