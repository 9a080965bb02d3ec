"""Conversions between classified outcomes, stored people, and output rows."""

from __future__ import annotations

from datetime import timedelta

from alive_checker.endpoint.models import NotFound, Success
from alive_checker.files.writer import ResultRow
from alive_checker.queue.models import PersonView, PersonWrite

UNCHECKED = "Unchecked"


def person_from_outcome(tax_id: str, outcome: Success | NotFound) -> PersonWrite:
    """Build the persisted result; a "no result" answer leaves the alive flag unknown."""

    if isinstance(outcome, Success):
        return PersonWrite(
            tax_id=tax_id,
            check_date=outcome.check_date,
            reference_date=outcome.reference_date,
            is_alive=outcome.is_alive,
            full_response=outcome.full_response,
            operation_id=outcome.operation_id,
            status_description=outcome.status_description,
            death_date=outcome.death_date,
        )
    return PersonWrite(
        tax_id=tax_id,
        check_date=outcome.check_date,
        reference_date=outcome.reference_date,
        is_alive=None,
        full_response=outcome.full_response,
        operation_id=outcome.operation_id,
        status_description=outcome.status_description,
    )


def result_row(person: PersonWrite | PersonView) -> ResultRow:
    check_date = (
        (person.check_date - timedelta(days=1)).date().isoformat()
        if person.check_date is not None
        else UNCHECKED
    )
    return ResultRow(
        tax_id=person.tax_id,
        in_vita=_alive_flag(person.is_alive),
        death_date=person.death_date or "",
        operation_id=person.operation_id or "",
        check_date=check_date,
        status_description=person.status_description or "",
    )


def _alive_flag(is_alive: bool | None) -> str:
    if is_alive is None:
        return ""
    return "S" if is_alive else "N"
