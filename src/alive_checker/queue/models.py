"""Domain models for the verification queue and stored results."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

MAX_RETRY_COUNT = 10


class QueueItemStatus(str, Enum):
    """Durable queue item lifecycle states."""

    CREATED = "created"
    QUEUED = "queued"
    PICKED = "picked"


@dataclass(slots=True, frozen=True)
class QueueItemView:
    """Readable queue item for the orchestrator and CLI."""

    id: str
    tax_id: str
    enqueue_time: datetime
    status: QueueItemStatus
    retry_count: int


@dataclass(slots=True, frozen=True)
class QueueStats:
    """Queue counters for operator-facing status output."""

    eligible: int
    picked: int
    exhausted: int
    imported_files: int
    people: int


@dataclass(slots=True, frozen=True)
class PersonWrite:
    """Verification result to persist once per finalized identifier."""

    tax_id: str
    check_date: datetime | None
    reference_date: datetime | None
    is_alive: bool | None
    full_response: str | None
    operation_id: str | None
    status_description: str | None
    death_date: str | None = None


@dataclass(slots=True, frozen=True)
class PersonView:
    """Stored verification result row."""

    id: int
    tax_id: str
    check_date: datetime | None
    reference_date: datetime | None
    is_alive: bool | None
    full_response: str | None
    operation_id: str | None
    status_description: str | None
    death_date: str | None
