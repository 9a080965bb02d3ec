from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import allure
import pytest
from sqlalchemy import update as sa_update
from sqlmodel import Session, col

from alive_checker.queue.models import MAX_RETRY_COUNT, PersonWrite, QueueItemStatus
from alive_checker.queue.repository import CheckerRepository, QueueItemNotFoundError
from alive_checker.storage.sqlmodel_models import QueueItem

pytestmark = [
    allure.epic("Verification Queue"),
    allure.feature("Durable Retry Queue"),
]


def _set_retry_count(repository: CheckerRepository, item_id: str, retry_count: int) -> None:
    with Session(repository.engine) as session:
        session.exec(
            sa_update(QueueItem)
            .where(col(QueueItem.id) == item_id)
            .values(retry_count=retry_count),
        )
        session.commit()


def test_enqueue_then_dequeue_returns_item_as_picked(repository: CheckerRepository) -> None:
    queued = repository.enqueue("TTRPNN00R51F839V")
    assert queued is not None
    assert queued.status == QueueItemStatus.QUEUED
    assert queued.retry_count == 0

    picked = repository.try_dequeue_next()

    assert picked is not None
    assert picked.id == queued.id
    assert picked.tax_id == "TTRPNN00R51F839V"
    assert picked.status == QueueItemStatus.PICKED
    assert repository.try_dequeue_next() is None


def test_enqueue_ignores_blank_identifiers(repository: CheckerRepository) -> None:
    assert repository.enqueue("") is None
    assert repository.enqueue("   ") is None
    assert repository.queue_count() == 0


def test_dequeue_on_empty_queue_returns_none(repository: CheckerRepository) -> None:
    assert repository.try_dequeue_next() is None


@pytest.mark.parametrize("retry_count", [1, 7, 9])
def test_items_below_retry_cap_are_eligible(
    repository: CheckerRepository,
    retry_count: int,
) -> None:
    item = repository.enqueue("RSSMRA80A01H501U")
    assert item is not None
    _set_retry_count(repository, item.id, retry_count)

    picked = repository.try_dequeue_next()

    assert picked is not None
    assert picked.retry_count == retry_count


@pytest.mark.parametrize("retry_count", [MAX_RETRY_COUNT, MAX_RETRY_COUNT + 1])
def test_items_at_or_above_retry_cap_are_never_dequeued(
    repository: CheckerRepository,
    retry_count: int,
) -> None:
    item = repository.enqueue("RSSMRA80A01H501U")
    assert item is not None
    _set_retry_count(repository, item.id, retry_count)

    assert repository.try_dequeue_next() is None
    assert repository.queue_count() == 0
    assert repository.queue_stats().exhausted == 1


def test_ack_removes_item_permanently(repository: CheckerRepository) -> None:
    item = repository.enqueue("A")
    assert item is not None
    picked = repository.try_dequeue_next()
    assert picked is not None

    repository.ack(picked.id)

    assert repository.get_item(picked.id) is None
    assert repository.try_dequeue_next() is None
    repository.ack(picked.id)


def test_nack_requeues_with_incremented_retry_and_later_enqueue_time(
    repository: CheckerRepository,
) -> None:
    item = repository.enqueue("A")
    assert item is not None
    picked = repository.try_dequeue_next()
    assert picked is not None

    nacked = repository.nack(picked.id)

    assert nacked.status == QueueItemStatus.QUEUED
    assert nacked.retry_count == 1
    assert nacked.enqueue_time > item.enqueue_time


def test_nack_unknown_item_raises(repository: CheckerRepository) -> None:
    with pytest.raises(QueueItemNotFoundError, match="missing-id"):
        repository.nack("missing-id")


def test_nacked_item_moves_behind_waiting_items(repository: CheckerRepository) -> None:
    for tax_id in ("A", "B", "C"):
        repository.enqueue(tax_id)

    first = repository.try_dequeue_next()
    assert first is not None
    assert first.tax_id == "A"
    repository.nack(first.id)

    order = []
    while (item := repository.try_dequeue_next()) is not None:
        order.append(item.tax_id)
        repository.ack(item.id)

    assert order == ["B", "C", "A"]


def test_item_is_dequeued_exactly_cap_times_when_always_nacked(
    repository: CheckerRepository,
) -> None:
    repository.enqueue("X")
    repository.enqueue("Y")

    dequeues = 0
    while (item := repository.try_dequeue_next()) is not None:
        dequeues += 1
        repository.nack(item.id)

    assert dequeues == 2 * MAX_RETRY_COUNT
    assert repository.queue_stats().exhausted == 2


def test_requeue_picked_releases_interrupted_items(repository: CheckerRepository) -> None:
    repository.enqueue("A")
    picked = repository.try_dequeue_next()
    assert picked is not None
    assert repository.queue_count() == 0

    released = repository.requeue_picked()

    assert released == 1
    again = repository.try_dequeue_next()
    assert again is not None
    assert again.id == picked.id
    assert again.retry_count == 0


def test_import_markers_track_completed_files(repository: CheckerRepository) -> None:
    assert repository.file_is_imported("input.csv") is False

    repository.file_completed("input.csv")

    assert repository.file_is_imported("input.csv") is True
    assert repository.file_is_imported("other.csv") is False


def test_save_person_and_list_most_recent_first(repository: CheckerRepository) -> None:
    check_date = datetime(2024, 2, 13, 9, 30, tzinfo=UTC)
    repository.save_person(
        PersonWrite(
            tax_id="A",
            check_date=check_date,
            reference_date=datetime(2024, 2, 12, tzinfo=UTC),
            is_alive=True,
            full_response="{}",
            operation_id="1673581176",
            status_description="OK",
        ),
    )
    repository.save_person(
        PersonWrite(
            tax_id="B",
            check_date=check_date,
            reference_date=datetime(2024, 2, 12, tzinfo=UTC),
            is_alive=None,
            full_response="{}",
            operation_id=None,
            status_description="NotFound",
        ),
    )

    people = repository.list_people(limit=10)

    assert [person.tax_id for person in people] == ["B", "A"]
    assert people[0].is_alive is None
    assert people[1].is_alive is True
    assert people[1].check_date == check_date
    assert repository.queue_stats().people == 2


def test_queue_survives_reopening_the_database(tmp_path: Path) -> None:
    db_path = tmp_path / "durable.db"
    first = CheckerRepository(db_path)
    first.init_schema()
    first.enqueue("A")
    first.close()

    second = CheckerRepository(db_path)
    second.init_schema()
    try:
        item = second.try_dequeue_next()
    finally:
        second.close()

    assert item is not None
    assert item.tax_id == "A"


def test_init_schema_with_reset_empties_the_database(repository: CheckerRepository) -> None:
    repository.enqueue("A")
    repository.file_completed("input.csv")

    repository.init_schema(reset=True)

    assert repository.queue_count() == 0
    assert repository.file_is_imported("input.csv") is False


def test_import_tax_ids_queues_stripped_identifiers_and_marks_file(
    repository: CheckerRepository,
) -> None:
    imported = repository.import_tax_ids("input.csv", [" A ", "", "   ", "B"])

    assert imported == 2
    assert repository.file_is_imported("input.csv") is True
    first = repository.try_dequeue_next()
    assert first is not None
    assert first.tax_id == "A"


def test_import_tax_ids_rolls_back_when_source_fails(repository: CheckerRepository) -> None:
    def tax_ids():
        yield "A"
        raise OSError("read failed")

    with pytest.raises(OSError, match="read failed"):
        repository.import_tax_ids("input.csv", tax_ids())

    assert repository.queue_count() == 0
    assert repository.file_is_imported("input.csv") is False


def test_complete_removes_item_and_stores_result(repository: CheckerRepository) -> None:
    repository.enqueue("A")
    picked = repository.try_dequeue_next()
    assert picked is not None

    repository.complete(
        picked.id,
        PersonWrite(
            tax_id="A",
            check_date=datetime(2024, 2, 13, 9, 30, tzinfo=UTC),
            reference_date=datetime(2024, 2, 12, tzinfo=UTC),
            is_alive=True,
            full_response="{}",
            operation_id="1673581177",
            status_description="OK",
        ),
    )

    assert repository.get_item(picked.id) is None
    assert [person.tax_id for person in repository.list_people()] == ["A"]
