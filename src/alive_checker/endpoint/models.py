"""Closed set of outcomes one verification request can produce."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

TOKEN_EXPIRED_DESCRIPTION = "NotFound/TokenExpired"


@dataclass(slots=True, frozen=True)
class Success:
    check_date: datetime
    reference_date: datetime
    is_alive: bool
    full_response: str
    operation_id: str | None
    status_description: str
    death_date: str = ""


@dataclass(slots=True, frozen=True)
class NotFound:
    """Well-formed "no result" business answer (error code EN122)."""

    check_date: datetime
    reference_date: datetime
    full_response: str
    operation_id: str | None
    status_description: str


@dataclass(slots=True, frozen=True)
class NotFoundTokenExpired:
    """404 with a structurally empty error body: the gateway rejected the token."""

    check_date: datetime
    full_response: str
    status_description: str = TOKEN_EXPIRED_DESCRIPTION


@dataclass(slots=True, frozen=True)
class Unauthorized:
    full_response: str
    status_description: str


@dataclass(slots=True, frozen=True)
class RateLimited:
    detail: str


@dataclass(slots=True, frozen=True)
class ServerError:
    detail: str


@dataclass(slots=True, frozen=True)
class InternalServerError:
    detail: str


Outcome = (
    Success
    | NotFound
    | NotFoundTokenExpired
    | Unauthorized
    | RateLimited
    | ServerError
    | InternalServerError
)
