"""Verification run: import identifiers, authenticate, and drain the queue."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import assert_never
from uuid import uuid4

from alive_checker.auth.models import AuthenticationResult
from alive_checker.auth.service import AuthService
from alive_checker.auth.signing import TokenService
from alive_checker.checker.mapping import person_from_outcome, result_row
from alive_checker.clock import Clock
from alive_checker.endpoint.body import create_body
from alive_checker.endpoint.client import AliveCheckerEndpoint
from alive_checker.endpoint.models import (
    InternalServerError,
    NotFound,
    NotFoundTokenExpired,
    Outcome,
    RateLimited,
    ServerError,
    Success,
    Unauthorized,
)
from alive_checker.files.reader import InputSource
from alive_checker.files.writer import CsvResultWriter
from alive_checker.queue.models import QueueItemView
from alive_checker.queue.repository import CheckerRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunSummary:
    """Aggregate run counters for CLI reporting."""

    imported: int = 0
    processed: int = 0
    succeeded: int = 0
    not_found: int = 0
    retried: int = 0
    aborted_reason: str | None = None
    output_path: Path | None = None


class AliveCheckerService:
    """Single-threaded verification loop over the durable queue.

    Every picked item ends the iteration either acknowledged (result stored and
    written) or negatively acknowledged, including when an unexpected error
    propagates out of the loop.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        repository: CheckerRepository,
        auth_service: AuthService,
        token_service: TokenService,
        endpoint: AliveCheckerEndpoint,
        clock: Clock,
        initialize_db: bool = False,
        correlation_id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.repository = repository
        self.auth_service = auth_service
        self.token_service = token_service
        self.endpoint = endpoint
        self.clock = clock
        self.initialize_db = initialize_db
        self._correlation_id_factory = correlation_id_factory or (lambda: str(uuid4()))
        self.summary = RunSummary()

    def run(self, source: InputSource, stop_event: threading.Event) -> bool:
        """Process every eligible identifier; False means the run stopped early."""

        self.summary = RunSummary()

        logger.debug("Initialize database")
        self.repository.init_schema(reset=self.initialize_db)
        self.repository.requeue_picked()

        self._import(source)

        logger.info("Authenticating...")
        auth = self._authenticate()
        if not auth.is_success:
            logger.warning("Token not received. Exit")
            return self._abort("authentication failed")
        logger.info("Authenticated")
        logger.debug("Token: %s", auth.token.access_token)
        logger.debug("Records to process: %d", self.repository.queue_count())

        operation_count = 0
        output_path = source.output_path()
        self.summary.output_path = output_path
        with CsvResultWriter(output_path) as writer:
            logger.info("Checking statuses")
            while True:
                if stop_event.is_set():
                    logger.warning("Cancellation requested, stopping before next item")
                    return self._abort("cancelled")

                item = self.repository.try_dequeue_next()
                if item is None:
                    break

                body = create_body(item.tax_id, operation_count, self.clock.now())
                operation_count += 1
                self.summary.processed += 1
                try:
                    outcome = self._fetch(auth, body)
                except Exception:
                    logger.exception("Unexpected failure for %s, returning it to the queue", item.tax_id)
                    self.repository.nack(item.id)
                    raise

                match outcome:
                    case ServerError(detail=detail):
                        self._retry(item)
                        logger.error("Server Error: %s - Enqueue - %s", item.tax_id, detail)
                    case RateLimited(detail=detail):
                        self._retry(item)
                        logger.debug("Rate Limited Error: %s - Enqueue - %s", item.tax_id, detail)
                    case NotFoundTokenExpired(full_response=full_response):
                        self._retry(item)
                        logger.warning(
                            "NotFound Error (Token Expired): %s - Enqueue - %s",
                            item.tax_id,
                            full_response,
                        )
                    case Unauthorized(full_response=full_response):
                        self._retry(item)
                        logger.warning(
                            "Unauthorized Error (Token Expired): %s - Enqueue - %s",
                            item.tax_id,
                            full_response,
                        )
                        auth = self._authenticate()
                        if not auth.is_success:
                            logger.warning("Token not renewed. Exiting")
                            return self._abort("re-authentication failed")
                    case InternalServerError(detail=detail):
                        self._retry(item)
                        logger.error("Exit application due to Internal Server Error: %s", detail)
                        return self._abort("internal server error")
                    case Success() | NotFound():
                        self._finalize(item, outcome, writer)
                    case _:
                        assert_never(outcome)

        logger.info("Elaboration complete")
        return True

    def _import(self, source: InputSource) -> None:
        logger.info("Importing file %s", source.input_path)
        if self.repository.file_is_imported(source.input_path):
            logger.info("File already imported")
            return

        self.summary.imported = self.repository.import_tax_ids(
            source.input_path,
            source.read_tax_ids(),
        )
        logger.info("File import completed: %d identifiers queued", self.summary.imported)

    def _authenticate(self) -> AuthenticationResult:
        return self.auth_service.authenticate_assertion(self._correlation_id_factory())

    def _fetch(self, auth: AuthenticationResult, body: str) -> Outcome:
        logger.debug("Body: %s", body)
        signature = self.token_service.get_signature(body)
        logger.debug("Signature: %s", signature)
        return self.endpoint.fetch_person_data(
            token=auth.token,
            audit_token=auth.audit_token,
            signature=signature,
            body=body,
        )

    def _retry(self, item: QueueItemView) -> None:
        self.repository.nack(item.id)
        self.summary.retried += 1

    def _finalize(
        self,
        item: QueueItemView,
        outcome: Success | NotFound,
        writer: CsvResultWriter,
    ) -> None:
        logger.debug(
            "Answer: %s - %s - %s",
            item.tax_id,
            type(outcome).__name__,
            outcome.status_description,
        )
        person = person_from_outcome(item.tax_id, outcome)
        try:
            self.repository.complete(item.id, person)
        except Exception:
            logger.exception("Could not store result for %s, returning it to the queue", item.tax_id)
            self.repository.nack(item.id)
            raise
        writer.write(result_row(person))
        if isinstance(outcome, Success):
            self.summary.succeeded += 1
        else:
            self.summary.not_found += 1

    def _abort(self, reason: str) -> bool:
        self.summary.aborted_reason = reason
        return False
