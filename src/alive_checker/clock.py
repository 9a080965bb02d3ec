"""Time source injected into signing, queue, and classification code."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Anything that can tell the current timezone-aware UTC time."""

    def now(self) -> datetime:
        """Return the current time."""
        raise NotImplementedError


class SystemClock:
    """Wall clock."""

    def now(self) -> datetime:
        return utc_now()


def utc_now() -> datetime:
    """Current UTC timestamp."""

    return datetime.now(tz=UTC)
