from __future__ import annotations

from datetime import UTC, datetime

import allure

from alive_checker.checker.mapping import UNCHECKED, person_from_outcome, result_row
from alive_checker.endpoint.models import NotFound, Success
from alive_checker.queue.models import PersonWrite

pytestmark = [
    allure.epic("Verification Run"),
    allure.feature("Result Mapping"),
]

CHECK_DATE = datetime(2024, 2, 13, 0, 30, tzinfo=UTC)
REFERENCE_DATE = datetime(2024, 2, 12, tzinfo=UTC)


def test_success_maps_alive_flag_and_death_date() -> None:
    person = person_from_outcome(
        "A",
        Success(
            check_date=CHECK_DATE,
            reference_date=REFERENCE_DATE,
            is_alive=False,
            full_response="{}",
            operation_id="42",
            status_description="OK",
            death_date="2023-11-04",
        ),
    )

    assert person.is_alive is False
    assert person.death_date == "2023-11-04"
    assert result_row(person).in_vita == "N"
    assert result_row(person).death_date == "2023-11-04"


def test_not_found_leaves_alive_flag_unknown() -> None:
    person = person_from_outcome(
        "B",
        NotFound(
            check_date=CHECK_DATE,
            reference_date=REFERENCE_DATE,
            full_response="{}",
            operation_id=None,
            status_description="NotFound",
        ),
    )

    row = result_row(person)

    assert person.is_alive is None
    assert row.in_vita == ""
    assert row.operation_id == ""
    assert row.check_date == "2024-02-12"
    assert row.status_description == "NotFound"


def test_person_without_check_date_is_unchecked() -> None:
    row = result_row(
        PersonWrite(
            tax_id="C",
            check_date=None,
            reference_date=None,
            is_alive=True,
            full_response=None,
            operation_id=None,
            status_description=None,
        ),
    )

    assert row.check_date == UNCHECKED
    assert row.in_vita == "S"
