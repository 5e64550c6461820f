"""
Numeric table storage and ingestion.

A NumTable keeps every value in a single flat float64 buffer laid out in
row-major order, plus one label per row. The value for (row, col) lives at
position ``row * col_count + col``.

Input files look like::

    gene<sep>A<sep>B
    g1<sep>1.1<sep>2.3
    g2<sep>4.0<sep>0.2

The first line is always a header and is discarded. The first field of each
data line is the row label (kept verbatim); the remaining fields are parsed
as floats, with unparseable text replaced by 0.0.
"""

from __future__ import annotations

import errno
import os
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np


class MalformedRowError(ValueError):
    """A data row has a different number of numeric fields than the first one."""

    def __init__(self, line_number: int, expected: int, found: int) -> None:
        self.line_number = line_number
        self.expected = expected
        self.found = found
        super().__init__(
            f"line {line_number}: expected {expected} numeric fields, found {found}"
        )


def _parse_field(text: str, strict: bool = False) -> float:
    """Parse one numeric field; whitespace is trimmed, failures become 0.0."""
    try:
        return float(text.strip())
    except ValueError:
        if strict:
            raise ValueError(f"Cannot parse {text!r} as a number")
        return 0.0


def _freeze(values: np.ndarray) -> np.ndarray:
    values.flags.writeable = False
    return values


class NumTable:
    """
    Immutable row-major table of float64 values with row labels.

    Build one with ``NumTable()`` (empty), ``NumTable.from_file`` or
    ``NumTable.from_rows``. The value buffer is read-only once built.
    """

    def __init__(self) -> None:
        self.row_count: int = 0
        self.col_count: int = 0
        self.row_labels: List[str] = []
        self.values: np.ndarray = _freeze(np.zeros(0, dtype=np.float64))

    # --- Construction ---
    @classmethod
    def _build(cls, labels: List[str], flat: Sequence[float], col_count: int) -> NumTable:
        table = cls()
        table.row_labels = labels
        table.row_count = len(labels)
        table.col_count = col_count
        table.values = _freeze(np.asarray(flat, dtype=np.float64).reshape(-1))
        return table

    @classmethod
    def from_file(
        cls,
        path: Union[str, os.PathLike],
        sep: str = "\t",
        strict: bool = False,
        verbose: bool = False,
    ) -> NumTable:
        """
        Ingest a delimiter-separated text file.

        Args:
            path: File to read
            sep: Single-character field separator
            strict: Raise ValueError on non-numeric fields instead of
                substituting 0.0
            verbose: Print a summary once the file is read

        Returns:
            A new NumTable

        Raises:
            OSError: The file cannot be opened or read, including bytes
                that are not valid UTF-8
            MalformedRowError: A row's field count differs from the first row's
        """
        if not isinstance(sep, str) or len(sep) != 1:
            raise ValueError(f"Separator must be a single character, got {sep!r}")

        labels: List[str] = []
        flat: List[float] = []
        col_count: Optional[int] = None

        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                # Header is discarded unconditionally
                f.readline()
                for line_number, line in enumerate(f, start=2):
                    line = line.rstrip("\r\n")
                    if not line:
                        continue
                    fields = line.split(sep)
                    if col_count is None:
                        col_count = len(fields) - 1
                    elif len(fields) - 1 != col_count:
                        raise MalformedRowError(line_number, col_count, len(fields) - 1)
                    labels.append(fields[0])
                    flat.extend(_parse_field(field, strict) for field in fields[1:])
        except UnicodeDecodeError as e:
            raise OSError(errno.EILSEQ, f"{path}: {e}") from e

        table = cls._build(labels, flat, col_count or 0)
        if verbose:
            print(f"Loaded {table.row_count} rows x {table.col_count} columns from {path}")
        return table

    @classmethod
    def from_rows(cls, labels: Iterable[str], rows: Iterable[Sequence[float]]) -> NumTable:
        """Build a table from labels and equally sized numeric rows."""
        labels = [str(label) for label in labels]
        flat: List[float] = []
        col_count: Optional[int] = None
        n_rows = 0
        for i, row in enumerate(rows):
            row = [float(v) for v in row]
            if col_count is None:
                col_count = len(row)
            elif len(row) != col_count:
                raise MalformedRowError(i + 1, col_count, len(row))
            flat.extend(row)
            n_rows += 1
        if n_rows != len(labels):
            raise ValueError(f"Got {len(labels)} labels for {n_rows} rows")
        return cls._build(labels, flat, col_count or 0)

    # --- Access ---
    def _check_row(self, row: int) -> None:
        if not 0 <= row < self.row_count:
            raise IndexError(f"row {row} out of range for table with {self.row_count} rows")

    def get(self, row: int, col: int) -> float:
        """Return the value at (row, col). Out-of-range indices raise IndexError."""
        self._check_row(row)
        if not 0 <= col < self.col_count:
            raise IndexError(f"column {col} out of range for table with {self.col_count} columns")
        return float(self.values[row * self.col_count + col])

    def row(self, row: int) -> np.ndarray:
        """Read-only view of one row's values."""
        self._check_row(row)
        start = row * self.col_count
        return self.values[start:start + self.col_count]

    @property
    def matrix(self) -> np.ndarray:
        """Read-only (row_count, col_count) view over the flat buffer."""
        return self.values.reshape(self.row_count, self.col_count)

    @property
    def shape(self):
        return self.row_count, self.col_count

    def __len__(self) -> int:
        return self.row_count

    def __repr__(self) -> str:
        return f"NumTable(row_count={self.row_count}, col_count={self.col_count})"

    # --- Diagnostics ---
    def render(self) -> str:
        """Human-readable dump of dimensions, labels and values."""
        lines = [f"rows: {self.row_count}, cols: {self.col_count}"]
        for r, label in enumerate(self.row_labels):
            cells = "\t".join(f"{v:g}" for v in self.row(r))
            lines.append(f"{label}\t{cells}" if cells else label)
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.render()


def load_table(
    path: Union[str, os.PathLike],
    sep: str = "\t",
    strict: bool = False,
    verbose: bool = False,
) -> NumTable:
    """Shortcut for ``NumTable.from_file``."""
    return NumTable.from_file(path, sep=sep, strict=strict, verbose=verbose)
