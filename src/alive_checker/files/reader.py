"""Delimited input source: one tax identifier per line, no header."""

from __future__ import annotations

import csv
from collections.abc import Iterator
from pathlib import Path
from typing import Protocol, runtime_checkable

OUTPUT_SUFFIX = "_out"


@runtime_checkable
class InputSource(Protocol):
    """Where identifiers come from and where their results go."""

    @property
    def input_path(self) -> str:
        """Stable key used by the imported-file guard."""
        raise NotImplementedError

    def read_tax_ids(self) -> Iterator[str]:
        """Yield raw identifiers in file order."""
        raise NotImplementedError

    def output_path(self) -> Path:
        """Target for result rows of this run."""
        raise NotImplementedError


class CsvFileSource:
    """Local CSV file; only the first column of each row is used."""

    def __init__(self, path: Path) -> None:
        if not str(path).strip():
            raise ValueError("Input file path must not be empty.")
        if not path.is_file():
            raise FileNotFoundError(f"The file {path} does not exist.")
        self.path = path
        self._output_path: Path | None = None

    @property
    def input_path(self) -> str:
        return str(self.path)

    def read_tax_ids(self) -> Iterator[str]:
        with self.path.open(newline="", encoding="utf-8-sig") as handle:
            for row in csv.reader(handle):
                if not row:
                    continue
                yield row[0]

    def output_path(self) -> Path:
        """``<stem>_out.csv`` next to the input, or ``_out_<n>.csv`` for the first free n."""

        if self._output_path is not None:
            return self._output_path

        candidate = self.path.with_name(f"{self.path.stem}{OUTPUT_SUFFIX}.csv")
        count = 0
        while candidate.exists():
            count += 1
            candidate = self.path.with_name(f"{self.path.stem}{OUTPUT_SUFFIX}_{count}.csv")
        self._output_path = candidate
        return candidate
