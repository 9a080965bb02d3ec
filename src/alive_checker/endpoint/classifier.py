"""Deterministic HTTP response classification for the verification loop."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime, time, timedelta
from http import HTTPStatus
from typing import Any

from alive_checker.endpoint.models import (
    InternalServerError,
    NotFound,
    NotFoundTokenExpired,
    Outcome,
    ServerError,
    Success,
    Unauthorized,
)

NO_RESULT_ERROR_CODE = "EN122"
IS_ALIVE_ATTRIBUTE_ID = "1003"
DEATH_DATE_ATTRIBUTE_ID = "1015"
ALIVE_FLAG = "S"


class UnexpectedResponseError(RuntimeError):
    """Raised for responses outside the known contract; fatal for the run."""

    def __init__(self, message: str, *, status_code: int, body: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass(slots=True, frozen=True)
class ErrorEntry:
    code: str
    text: str
    kind: str


@dataclass(slots=True, frozen=True)
class ErrorEnvelope:
    """``listaErrori`` + ``idOperazioneANPR`` error body."""

    errors: tuple[ErrorEntry, ...] | None = None
    operation_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.errors is None and not self.operation_id

    def has_code(self, code: str) -> bool:
        return any(entry.code == code for entry in self.errors or ())


def classify_response(*, status_code: int, body: str, check_date: datetime) -> Outcome:
    """Map one HTTP answer to an outcome variant.

    Transport failures and rate-limit rejections never reach this function; the
    endpoint turns them into ``ServerError`` / ``RateLimited`` itself.
    """

    if status_code == HTTPStatus.BAD_REQUEST:
        return ServerError(detail=body)
    if status_code == HTTPStatus.INTERNAL_SERVER_ERROR:
        return InternalServerError(detail=body)
    if status_code == HTTPStatus.UNAUTHORIZED:
        return Unauthorized(full_response=body, status_description=status_description(status_code))

    reference_date = reference_date_for(check_date)
    if not 200 <= status_code < 300:  # noqa: PLR2004
        envelope = parse_error_envelope(body)
        if envelope.is_empty:
            return NotFoundTokenExpired(check_date=check_date, full_response=body)
        if envelope.has_code(NO_RESULT_ERROR_CODE):
            return NotFound(
                check_date=check_date,
                reference_date=reference_date,
                full_response=body,
                operation_id=envelope.operation_id,
                status_description=status_description(status_code),
            )
        codes = ", ".join(entry.code for entry in envelope.errors or ()) or "<none>"
        message = f"Unhandled error response HTTP {status_code} with error codes: {codes}"
        if envelope.extra:
            message += f" (other fields: {json.dumps(envelope.extra, sort_keys=True)})"
        raise UnexpectedResponseError(
            message,
            status_code=status_code,
            body=body,
        )

    payload = _load_json(body, status_code=status_code)
    attributes = _subject_attributes(payload, status_code=status_code, body=body)
    return Success(
        check_date=check_date,
        reference_date=reference_date,
        is_alive=_attribute_flag(attributes, IS_ALIVE_ATTRIBUTE_ID),
        full_response=body,
        operation_id=_optional_str(payload.get("idOperazioneANPR")),
        status_description=status_description(status_code),
        death_date=_attribute_date(attributes, DEATH_DATE_ATTRIBUTE_ID),
    )


def parse_error_envelope(body: str) -> ErrorEnvelope:
    """Parse an error body; anything that is not a JSON object counts as empty."""

    try:
        payload = json.loads(body)
    except ValueError:
        return ErrorEnvelope()
    if not isinstance(payload, dict):
        return ErrorEnvelope()

    raw_errors = payload.get("listaErrori")
    errors: tuple[ErrorEntry, ...] | None = None
    if isinstance(raw_errors, list):
        errors = tuple(
            ErrorEntry(
                code=str(item.get("codiceErroreAnomalia") or ""),
                text=str(item.get("testoErroreAnomalia") or ""),
                kind=str(item.get("tipoErroreAnomalia") or ""),
            )
            for item in raw_errors
            if isinstance(item, dict)
        )
    extra = {
        key: value
        for key, value in payload.items()
        if key not in {"listaErrori", "idOperazioneANPR"}
    }
    return ErrorEnvelope(
        errors=errors,
        operation_id=_optional_str(payload.get("idOperazioneANPR")),
        extra=extra,
    )


def reference_date_for(check_date: datetime) -> datetime:
    """Midnight UTC of the day before the check."""

    previous_day = (check_date - timedelta(days=1)).date()
    return datetime.combine(previous_day, time.min, tzinfo=UTC)


def status_description(status_code: int) -> str:
    """HTTP reason phrase without spaces, e.g. ``OK``, ``NotFound``."""

    try:
        return HTTPStatus(status_code).phrase.replace(" ", "").replace("-", "")
    except ValueError:
        return str(status_code)


def _load_json(body: str, *, status_code: int) -> dict[str, Any]:
    try:
        payload = json.loads(body)
    except ValueError as error:
        raise UnexpectedResponseError(
            f"Success response HTTP {status_code} is not valid JSON: {error}",
            status_code=status_code,
            body=body,
        ) from error
    if not isinstance(payload, dict):
        raise UnexpectedResponseError(
            f"Success response HTTP {status_code} is not a JSON object",
            status_code=status_code,
            body=body,
        )
    return payload


def _subject_attributes(
    payload: dict[str, Any],
    *,
    status_code: int,
    body: str,
) -> list[dict[str, Any]]:
    try:
        attributes = payload["listaSoggetti"]["datiSoggetto"][0]["infoSoggettoEnte"]
    except (KeyError, IndexError, TypeError) as error:
        raise UnexpectedResponseError(
            f"Success response HTTP {status_code} has no listaSoggetti.datiSoggetto[0]"
            f".infoSoggettoEnte ({error!r})",
            status_code=status_code,
            body=body,
        ) from error
    if not isinstance(attributes, list):
        raise UnexpectedResponseError(
            f"Success response HTTP {status_code} infoSoggettoEnte is not a list",
            status_code=status_code,
            body=body,
        )
    return [item for item in attributes if isinstance(item, dict)]


def _find_attribute(attributes: list[dict[str, Any]], attribute_id: str) -> dict[str, Any] | None:
    for attribute in attributes:
        if attribute.get("id") == attribute_id:
            return attribute
    return None


def _attribute_flag(attributes: list[dict[str, Any]], attribute_id: str) -> bool:
    attribute = _find_attribute(attributes, attribute_id)
    if attribute is None:
        return False
    return attribute.get("valore") == ALIVE_FLAG


def _attribute_date(attributes: list[dict[str, Any]], attribute_id: str) -> str:
    attribute = _find_attribute(attributes, attribute_id)
    if attribute is None:
        return ""
    return str(attribute.get("valoreData") or "")


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None
