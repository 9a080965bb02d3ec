"""Controllers for verification CLI commands."""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

import httpx

from alive_checker.auth.service import AuthService
from alive_checker.auth.signing import TokenCreator, TokenService
from alive_checker.checker.mapping import result_row
from alive_checker.checker.service import AliveCheckerService, RunSummary
from alive_checker.clock import Clock, SystemClock
from alive_checker.config import Settings
from alive_checker.endpoint.client import AliveCheckerEndpoint
from alive_checker.endpoint.rate_limiter import FixedWindowRateLimiter
from alive_checker.files.reader import CsvFileSource
from alive_checker.queue.repository import CheckerRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunCommand:
    """CLI input for one verification run."""

    input_path: Path
    db_path: Path | None
    init_db: bool | None


@dataclass(slots=True)
class QueueStatusCommand:
    """CLI input for queue counters."""

    db_path: Path | None


@dataclass(slots=True)
class QueueResultsCommand:
    """CLI input for stored result listing."""

    db_path: Path | None
    limit: int


@dataclass(slots=True)
class RunResult:
    """Run report to render in CLI."""

    lines: list[str]
    success: bool


class CheckerCliController:
    """Wires settings into the verification stack and renders reports."""

    def __init__(
        self,
        *,
        transport: httpx.BaseTransport | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.transport = transport
        self.clock = clock or SystemClock()

    def run(self, command: RunCommand) -> RunResult:
        settings = Settings.from_env(db_path=command.db_path, initialize_db=command.init_db)
        settings.validate_for_run()
        source = CsvFileSource(command.input_path)

        creator = TokenCreator.from_pem_file(
            key_id=settings.client.key_id,
            path=settings.client.private_key_path,
        )
        token_service = TokenService(
            settings=settings.client,
            creator=creator,
            clock=self.clock,
        )
        rate_limiter = FixedWindowRateLimiter(
            permit_limit=settings.rate_limit.permit_limit,
            window=timedelta(seconds=settings.rate_limit.window_seconds),
            clock=self.clock,
        )

        stop_event = threading.Event()
        with (
            _repository(settings, self.clock, migrate=False) as repository,
            httpx.Client(
                timeout=httpx.Timeout(settings.http.timeout_seconds, connect=10.0),
                transport=self.transport
                or httpx.HTTPTransport(retries=settings.http.connect_retries),
            ) as client,
        ):
            service = AliveCheckerService(
                repository=repository,
                auth_service=AuthService(
                    settings=settings.client,
                    token_service=token_service,
                    client=client,
                ),
                token_service=token_service,
                endpoint=AliveCheckerEndpoint(
                    settings=settings.client,
                    client=client,
                    clock=self.clock,
                    rate_limiter=rate_limiter,
                ),
                clock=self.clock,
                initialize_db=settings.storage.initialize_db,
            )
            with _stop_on_signals(stop_event):
                success = service.run(source, stop_event)

        return RunResult(lines=_summary_lines(service.summary), success=success)

    def queue_status(self, command: QueueStatusCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings, self.clock) as repository:
            stats = repository.queue_stats()

        return [
            f"Database: {settings.storage.db_path}",
            f"Queue: eligible={stats.eligible} picked={stats.picked} exhausted={stats.exhausted}",
            f"Imported files: {stats.imported_files}",
            f"Stored results: {stats.people}",
        ]

    def queue_results(self, command: QueueResultsCommand) -> list[str]:
        """Render most recent results in output-file column order."""

        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings, self.clock) as repository:
            people = repository.list_people(limit=command.limit)

        if not people:
            return ["No results stored."]

        lines = []
        for person in people:
            row = result_row(person)
            lines.append(
                f"{row.tax_id} in_vita={row.in_vita or '-'} death_date={row.death_date or '-'} "
                f"operation_id={row.operation_id or '-'} checked={row.check_date} "
                f"status={row.status_description or '-'}",
            )
        return lines


def _summary_lines(summary: RunSummary) -> list[str]:
    lines = [
        "Run summary: "
        f"imported={summary.imported} processed={summary.processed} "
        f"succeeded={summary.succeeded} not_found={summary.not_found} "
        f"retried={summary.retried}",
    ]
    if summary.output_path is not None:
        lines.append(f"Output: {summary.output_path}")
    if summary.aborted_reason is not None:
        lines.append(f"Stopped early: {summary.aborted_reason}")
    return lines


@contextmanager
def _repository(
    settings: Settings,
    clock: Clock,
    *,
    migrate: bool = True,
) -> Iterator[CheckerRepository]:
    repository = CheckerRepository(
        db_path=settings.storage.db_path,
        clock=clock,
        busy_timeout_ms=settings.storage.busy_timeout_ms,
    )
    if migrate:
        repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()


@contextmanager
def _stop_on_signals(stop_event: threading.Event) -> Iterator[None]:
    """Turn SIGINT/SIGTERM into a cooperative stop request for the run loop."""

    if not hasattr(signal, "SIGINT"):
        yield
        return

    original_sigint = signal.getsignal(signal.SIGINT)
    original_sigterm = signal.getsignal(signal.SIGTERM)

    def _handler(signum: int, _: object | None) -> None:
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = str(signum)
        logger.warning("Received %s, finishing current item", name)
        stop_event.set()

    try:
        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
    except ValueError:
        # Signal handlers can only be installed in main thread.
        yield
        return

    try:
        yield
    finally:
        signal.signal(signal.SIGINT, original_sigint)
        signal.signal(signal.SIGTERM, original_sigterm)
