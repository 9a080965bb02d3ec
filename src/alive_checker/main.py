"""CLI entrypoint for alive-checker."""

from pathlib import Path

import rich_click as click

from alive_checker import __version__
from alive_checker.auth.signing import SigningKeyError
from alive_checker.checker.controllers import (
    CheckerCliController,
    QueueResultsCommand,
    QueueStatusCommand,
    RunCommand,
)
from alive_checker.logging_setup import configure_logging

click.rich_click.USE_MARKDOWN = True
CHECKER_CONTROLLER = CheckerCliController()


@click.group()
@click.version_option(version=__version__, prog_name="alive-checker")
def alive_checker() -> None:
    """Bulk existence-in-life verification CLI."""


@alive_checker.command("run")
@click.option(
    "--input",
    "input_path",
    type=click.Path(path_type=Path, dir_okay=False),
    required=True,
    help="CSV file with one tax identifier per line, no header.",
)
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--init-db/--keep-db",
    "init_db",
    default=None,
    help="Delete and re-create the database before importing.",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Also write logs to this file.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Log verbosity; DEBUG includes tokens and response bodies.",
)
def run(
    input_path: Path,
    db_path: Path | None,
    init_db: bool | None,
    log_file: Path | None,
    log_level: str,
) -> None:
    """Import the input file, verify every queued identifier, and write the results CSV."""

    configure_logging(log_level, log_file)
    try:
        result = CHECKER_CONTROLLER.run(
            RunCommand(
                input_path=input_path,
                db_path=db_path,
                init_db=init_db,
            ),
        )
    except (ValueError, FileNotFoundError, SigningKeyError) as error:
        raise click.ClickException(str(error)) from error

    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Verification run stopped before the queue was drained.")


@alive_checker.group()
def queue() -> None:
    """Queue inspection commands."""


@queue.command("status")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def queue_status(db_path: Path | None) -> None:
    """Show queue and result counters."""

    _emit_lines(CHECKER_CONTROLLER.queue_status(QueueStatusCommand(db_path=db_path)))


@queue.command("results")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=1000),
    default=50,
    show_default=True,
    help="Maximum number of results to show.",
)
def queue_results(db_path: Path | None, limit: int) -> None:
    """List the most recently stored verification results."""

    _emit_lines(
        CHECKER_CONTROLLER.queue_results(
            QueueResultsCommand(
                db_path=db_path,
                limit=limit,
            ),
        ),
    )


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    alive_checker()
