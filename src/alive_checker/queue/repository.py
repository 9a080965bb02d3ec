"""Persistent queue repository for tax identifiers and verification results."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from uuid import uuid4

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, literal_column
from sqlalchemy import update as sa_update
from sqlmodel import Session, col, select

from alive_checker.clock import Clock, SystemClock
from alive_checker.queue.models import (
    MAX_RETRY_COUNT,
    PersonView,
    PersonWrite,
    QueueItemStatus,
    QueueItemView,
    QueueStats,
)
from alive_checker.storage.alembic_runner import upgrade_head
from alive_checker.storage.common import (
    build_sqlite_engine,
    to_db_datetime,
    to_utc_aware_datetime,
)
from alive_checker.storage.sqlmodel_models import ImportedFile, Person, QueueItem

logger = logging.getLogger(__name__)


class QueueItemNotFoundError(RuntimeError):
    """Raised when a queue transition targets an item that does not exist."""


class CheckerRepository:
    """Queue persistence facade backed by SQLModel + SQLite.

    Items become eligible for dequeue while ``status == queued`` and
    ``retry_count < MAX_RETRY_COUNT``; selection is always the oldest
    ``enqueue_time`` at the instant of the call, so a negative ack moves
    an item behind everything already waiting.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        clock: Clock | None = None,
        busy_timeout_ms: int = 5_000,
    ) -> None:
        self.db_path = db_path
        self.clock = clock or SystemClock()
        self.busy_timeout_ms = busy_timeout_ms
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=busy_timeout_ms)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self, *, reset: bool = False) -> None:
        """Run schema migrations, optionally starting from an empty database."""

        if reset:
            self.engine.dispose()
            for suffix in ("", "-wal", "-shm"):
                Path(f"{self.db_path}{suffix}").unlink(missing_ok=True)
            logger.info("Database %s removed for re-initialization", self.db_path)
        upgrade_head(self.db_path)

    def _new_queue_row(self, tax_id: str) -> QueueItem:
        return QueueItem(
            id=str(uuid4()),
            tax_id=tax_id,
            enqueue_time=to_db_datetime(self.clock.now()),
            status=QueueItemStatus.QUEUED.value,
            retry_count=0,
        )

    def enqueue(self, tax_id: str) -> QueueItemView | None:
        """Queue one identifier; blank identifiers are ignored."""

        if not tax_id or not tax_id.strip():
            return None

        with Session(self.engine) as session:
            row = self._new_queue_row(tax_id)
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_item_view(row)

    def import_tax_ids(self, path: str, tax_ids: Iterable[str]) -> int:
        """Queue a whole source and mark it imported in one transaction.

        Nothing is committed if ``tax_ids`` raises part-way, so a failed import
        can be repeated without queueing any identifier twice.
        """

        imported = 0
        with Session(self.engine) as session:
            for raw_tax_id in tax_ids:
                tax_id = raw_tax_id.strip()
                if not tax_id:
                    continue
                session.add(self._new_queue_row(tax_id))
                imported += 1
            session.add(ImportedFile(path=path, imported_time=to_db_datetime(self.clock.now())))
            session.commit()
        return imported

    def try_dequeue_next(self) -> QueueItemView | None:
        """Pick the oldest eligible item, or return None when the queue is drained."""

        while True:
            with Session(self.engine) as session:
                candidate = session.exec(
                    select(QueueItem)
                    .where(
                        QueueItem.status == QueueItemStatus.QUEUED.value,
                        col(QueueItem.retry_count) < MAX_RETRY_COUNT,
                    )
                    .order_by(
                        col(QueueItem.enqueue_time).asc(),
                        literal_column("queue_items.rowid").asc(),
                    )
                    .limit(1),
                ).one_or_none()
                if candidate is None:
                    return None

                result = session.exec(
                    sa_update(QueueItem)
                    .where(
                        col(QueueItem.id) == candidate.id,
                        col(QueueItem.status) == QueueItemStatus.QUEUED.value,
                    )
                    .values(status=QueueItemStatus.PICKED.value),
                )
                if result.rowcount != 1:
                    session.rollback()
                    continue

                session.commit()
                picked = session.exec(select(QueueItem).where(QueueItem.id == candidate.id)).one()
                return _to_item_view(picked)

    def ack(self, item_id: str) -> None:
        """Remove an item permanently; unknown ids are ignored."""

        with Session(self.engine) as session:
            session.exec(sa_delete(QueueItem).where(col(QueueItem.id) == item_id))
            session.commit()

    def nack(self, item_id: str) -> QueueItemView:
        """Return an item to the tail of the queue with one more retry recorded."""

        now = self.clock.now()
        with Session(self.engine) as session:
            row = session.exec(select(QueueItem).where(QueueItem.id == item_id)).one_or_none()
            if row is None:
                raise QueueItemNotFoundError(f"Queue item not found: {item_id}")
            row.status = QueueItemStatus.QUEUED.value
            row.enqueue_time = to_db_datetime(now)
            row.retry_count += 1
            session.add(row)
            session.commit()
            session.refresh(row)
            if row.retry_count >= MAX_RETRY_COUNT:
                logger.warning(
                    "Queue item %s (%s) reached %d retries and will not be dequeued again",
                    row.id,
                    row.tax_id,
                    row.retry_count,
                )
            return _to_item_view(row)

    def requeue_picked(self) -> int:
        """Release items left picked by an interrupted run; retry counts are untouched."""

        with Session(self.engine) as session:
            result = session.exec(
                sa_update(QueueItem)
                .where(col(QueueItem.status) == QueueItemStatus.PICKED.value)
                .values(status=QueueItemStatus.QUEUED.value),
            )
            session.commit()
            released = int(result.rowcount or 0)
        if released:
            logger.warning("Released %d queue items left picked by a previous run", released)
        return released

    def queue_count(self) -> int:
        """Count items that a dequeue could still return."""

        with Session(self.engine) as session:
            return session.exec(
                select(func.count())
                .select_from(QueueItem)
                .where(
                    QueueItem.status == QueueItemStatus.QUEUED.value,
                    col(QueueItem.retry_count) < MAX_RETRY_COUNT,
                ),
            ).one()

    def get_item(self, item_id: str) -> QueueItemView | None:
        with Session(self.engine) as session:
            row = session.exec(select(QueueItem).where(QueueItem.id == item_id)).one_or_none()
            return _to_item_view(row) if row is not None else None

    def file_is_imported(self, path: str) -> bool:
        with Session(self.engine) as session:
            row = session.exec(
                select(ImportedFile.id).where(ImportedFile.path == path).limit(1),
            ).first()
            return row is not None

    def file_completed(self, path: str) -> None:
        """Record that an input source has been fully drained into the queue."""

        with Session(self.engine) as session:
            session.add(ImportedFile(path=path, imported_time=to_db_datetime(self.clock.now())))
            session.commit()

    def save_person(self, person: PersonWrite) -> int:
        """Persist one finalized verification result and return its row id."""

        with Session(self.engine) as session:
            row = _to_person_row(person)
            session.add(row)
            session.commit()
            session.refresh(row)
            return row.id or 0

    def complete(self, item_id: str, person: PersonWrite) -> int:
        """Acknowledge an item and store its result atomically."""

        with Session(self.engine) as session:
            session.exec(sa_delete(QueueItem).where(col(QueueItem.id) == item_id))
            row = _to_person_row(person)
            session.add(row)
            session.commit()
            session.refresh(row)
            return row.id or 0

    def list_people(self, *, limit: int = 50) -> list[PersonView]:
        """List most recently stored results first."""

        with Session(self.engine) as session:
            rows = session.exec(
                select(Person).order_by(col(Person.id).desc()).limit(limit),
            ).all()
        return [_to_person_view(row) for row in rows]

    def queue_stats(self) -> QueueStats:
        with Session(self.engine) as session:
            eligible = session.exec(
                select(func.count())
                .select_from(QueueItem)
                .where(
                    QueueItem.status == QueueItemStatus.QUEUED.value,
                    col(QueueItem.retry_count) < MAX_RETRY_COUNT,
                ),
            ).one()
            picked = session.exec(
                select(func.count())
                .select_from(QueueItem)
                .where(QueueItem.status == QueueItemStatus.PICKED.value),
            ).one()
            exhausted = session.exec(
                select(func.count())
                .select_from(QueueItem)
                .where(col(QueueItem.retry_count) >= MAX_RETRY_COUNT),
            ).one()
            imported_files = session.exec(select(func.count()).select_from(ImportedFile)).one()
            people = session.exec(select(func.count()).select_from(Person)).one()
        return QueueStats(
            eligible=eligible,
            picked=picked,
            exhausted=exhausted,
            imported_files=imported_files,
            people=people,
        )


def _optional_db_datetime(value: datetime | None) -> datetime | None:
    return to_db_datetime(value) if value is not None else None


def _to_person_row(person: PersonWrite) -> Person:
    return Person(
        tax_id=person.tax_id,
        check_date=_optional_db_datetime(person.check_date),
        reference_date=_optional_db_datetime(person.reference_date),
        is_alive=person.is_alive,
        full_response=person.full_response,
        operation_id=person.operation_id,
        status_description=person.status_description,
        death_date=person.death_date,
    )


def _to_item_view(row: QueueItem) -> QueueItemView:
    return QueueItemView(
        id=row.id,
        tax_id=row.tax_id,
        enqueue_time=to_utc_aware_datetime(row.enqueue_time),
        status=QueueItemStatus(row.status),
        retry_count=row.retry_count,
    )


def _to_person_view(row: Person) -> PersonView:
    return PersonView(
        id=row.id or 0,
        tax_id=row.tax_id,
        check_date=to_utc_aware_datetime(row.check_date) if row.check_date is not None else None,
        reference_date=(
            to_utc_aware_datetime(row.reference_date) if row.reference_date is not None else None
        ),
        is_alive=row.is_alive,
        full_response=row.full_response,
        operation_id=row.operation_id,
        status_description=row.status_description,
        death_date=row.death_date,
    )
