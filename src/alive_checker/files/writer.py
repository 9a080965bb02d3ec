"""CSV writer for finalized verification results."""

from __future__ import annotations

import csv
import logging
from dataclasses import astuple, dataclass
from pathlib import Path
from typing import TextIO

logger = logging.getLogger(__name__)

OUTPUT_HEADER: tuple[str, ...] = (
    "CodiceFiscale",
    "InVita",
    "DataDecesso",
    "IdOperazioneANPR",
    "DataControllo",
    "DescrizioneStato",
)


@dataclass(slots=True, frozen=True)
class ResultRow:
    """One output line; field order matches ``OUTPUT_HEADER``."""

    tax_id: str
    in_vita: str
    death_date: str
    operation_id: str
    check_date: str
    status_description: str


class CsvResultWriter:
    """Appends result rows to one target, writing the header exactly once."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._handle: TextIO | None = None
        self._writer = None

    def open(self) -> None:
        if self._handle is not None:
            return
        needs_header = not self.path.exists() or self.path.stat().st_size == 0
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("a", newline="", encoding="utf-8")
        self._writer = csv.writer(self._handle)
        if needs_header:
            self._writer.writerow(OUTPUT_HEADER)
            self._handle.flush()
        logger.info("Writing results to %s", self.path)

    def write(self, row: ResultRow) -> None:
        if self._handle is None or self._writer is None:
            raise RuntimeError("Result writer is not open.")
        self._writer.writerow(astuple(row))
        self._handle.flush()

    def close(self) -> None:
        if self._handle is None:
            return
        self._handle.close()
        self._handle = None
        self._writer = None

    def __enter__(self) -> CsvResultWriter:
        self.open()
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
