"""
Column-addressed table of numbers and text, read from a delimited data
file, with a sort order kept apart from the stored rows.
"""

from __future__ import annotations
from typing import Iterable, List, Optional, Sequence, Union

import re
import threading
from enum import Enum
from pathlib import Path

import numpy as np
import pandas as pd

from .errors import LoadSchemaError


Cell = Union[int, float, str]

_HEADER_SEP = re.compile(r"[ ,\t]")
_INT = re.compile(r"[+-]?\d+")
_FLOAT = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


class SortOrder(Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


class LoadPolicy(Enum):
    """What to do with a row whose field count differs from the header's."""
    RAISE = "raise"   # raise LoadSchemaError, table unchanged
    SKIP = "skip"     # leave the row out and carry on
    ABORT = "abort"   # stop reading, keep the rows before it


class LoadReport:
    def __init__(self, rows_loaded: int = 0, anomalies: Optional[List[LoadSchemaError]] = None,
                 aborted: bool = False):
        self.rows_loaded = rows_loaded
        self.anomalies = anomalies or []
        self.aborted = aborted

    def __repr__(self):
        return (f"LoadReport(rows_loaded={self.rows_loaded}, "
                f"anomalies={len(self.anomalies)}, aborted={self.aborted})")


def parse_number(value) -> Optional[Union[int, float]]:
    """The number `value` stands for, or None if it isn't one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    # plain decimal notation only; no digit separators, no inf/nan
    text = str(value).strip()
    if _INT.fullmatch(text):
        return int(text)
    if _FLOAT.fullmatch(text):
        return float(text)
    return None


class ResultTable:
    """
    Rows are stored in load order and never moved. Sorting builds a
    permutation from displayed row number to stored row, and every
    row-addressed read and write goes through it.

    Cells keep the text they were given; a column's numbers are only
    parsed out of that text to type and sort it.
    """

    def __init__(self):
        self.columns: List[str] = []
        self._rows: List[List[str]] = []
        self._sort_order = np.arange(0)
        self.last_sort_order = SortOrder.ASCENDING
        self._numeric_cache = {}
        self._lock = threading.RLock()

    def __len__(self):
        return len(self._rows)

    @property
    def row_count(self) -> int:
        return len(self._rows)

    @property
    def column_count(self) -> int:
        return len(self.columns)

    @property
    def sort_order(self) -> List[int]:
        """Stored row index for each displayed row."""
        return [int(i) for i in self._sort_order]

    # ────────────────────────── loading ────────────────────────────────────
    def load(self, header: Sequence[str], rows: Iterable[Sequence[str]],
             policy: LoadPolicy = LoadPolicy.RAISE,
             line_numbers: Optional[Sequence[int]] = None) -> LoadReport:
        """
        Replace the table contents with `header` and `rows`.

        Args:
            header: Column names; fixes the field count of every row
            rows: Data rows as lists of text fields
            policy: Handling of rows with the wrong field count
            line_numbers: File line of each row, for reporting; by default
                the rows are taken to start on line 2

        Returns:
            LoadReport with the rows kept and the rows that didn't fit
        """
        columns = [str(h) for h in header]
        new_rows: List[List[str]] = []
        report = LoadReport()
        rows = list(rows)
        if line_numbers is None:
            line_numbers = range(2, len(rows) + 2)
        for line_num, fields in zip(line_numbers, rows):
            if len(fields) != len(columns):
                error = LoadSchemaError(line_num, len(columns), len(fields))
                if policy == LoadPolicy.RAISE:
                    raise error
                print(f"[WARN] {error}")
                report.anomalies.append(error)
                if policy == LoadPolicy.ABORT:
                    report.aborted = True
                    break
                continue
            new_rows.append([_cell_text(f) for f in fields])

        with self._lock:
            self.columns = columns
            self._rows = new_rows
            self._sort_order = np.arange(len(new_rows))
            self.last_sort_order = SortOrder.ASCENDING
            self._numeric_cache = {col: _all_numbers(new_rows, col)
                                   for col in range(len(columns))}
        report.rows_loaded = len(new_rows)
        return report

    def read_data_file(self, path, policy: LoadPolicy = LoadPolicy.RAISE) -> LoadReport:
        """
        First line: column names split on space, comma or tab. Other lines:
        comma-separated values. Blank lines are ignored.
        """
        with open(path) as f:
            lines = [l.rstrip("\r\n") for l in f]
        lines = [(n, l) for n, l in enumerate(lines, 1) if l.strip()]
        if not lines:
            return self.load([], [], policy)

        header = _HEADER_SEP.split(lines[0][1].strip())
        rows = [l.split(",") for _, l in lines[1:]]
        report = self.load(header, rows, policy, [n for n, _ in lines[1:]])
        print(f"[INFO] Read {report.rows_loaded} lines of data from {Path(path).name}")
        return report

    # ────────────────────────── access ─────────────────────────────────────
    def header(self, col: int) -> str:
        return self.columns[col]

    def column_index(self, name: str) -> Optional[int]:
        """Number of the column called `name`, or None."""
        try:
            return self.columns.index(name)
        except ValueError:
            return None

    def get(self, row: int, col: int) -> str:
        """Cell text, exactly as loaded or set."""
        with self._lock:
            return self._rows[self._physical(row)][self._check_col(col)]

    def value(self, row: int, col: int) -> Cell:
        """Cell as a number in a numeric column, as text otherwise."""
        with self._lock:
            text = self.get(row, col)
            return parse_number(text) if self.is_numeric(col) else text

    def set(self, row: int, col: int, value: Cell) -> None:
        with self._lock:
            col = self._check_col(col)
            self._rows[self._physical(row)][col] = _cell_text(value)
            self._numeric_cache.pop(col, None)

    def row(self, row: int) -> List[str]:
        with self._lock:
            return list(self._rows[self._physical(row)])

    def find_row(self, value, col: int = 0) -> Optional[int]:
        """First displayed row whose cell in `col` reads as `value`."""
        target = str(value)
        with self._lock:
            for row in range(len(self._rows)):
                if self._rows[self._sort_order[row]][col] == target:
                    return row
        return None

    def is_numeric(self, col: int) -> bool:
        """True if every cell of the column is a number."""
        with self._lock:
            col = self._check_col(col)
            if col not in self._numeric_cache:
                self._numeric_cache[col] = _all_numbers(self._rows, col)
            return self._numeric_cache[col]

    # ────────────────────────── sorting ────────────────────────────────────
    def sort(self, col: int, order: SortOrder = SortOrder.ASCENDING) -> List[int]:
        """
        Re-order the displayed rows by `col`, numerically if every cell is a
        number and as text otherwise. Stored rows don't move. Descending is
        the exact reverse of ascending.
        """
        with self._lock:
            col = self._check_col(col)
            if self.is_numeric(col):
                values = np.array([float(parse_number(r[col])) for r in self._rows],
                                  dtype=np.float64)
                ascending = np.argsort(values, kind="stable")
            else:
                values = [r[col] for r in self._rows]
                ascending = np.array(sorted(range(len(values)), key=values.__getitem__),
                                     dtype=np.int64)
            if order == SortOrder.DESCENDING:
                ascending = ascending[::-1]
            self._sort_order = ascending
            self.last_sort_order = order
            return self.sort_order

    # ────────────────────────── export ─────────────────────────────────────
    def to_dataframe(self) -> pd.DataFrame:
        """Table in displayed row order."""
        with self._lock:
            data = [list(self._rows[i]) for i in self._sort_order]
            return pd.DataFrame(data, columns=list(self.columns))

    def write_csv(self, path) -> None:
        self.to_dataframe().to_csv(path, index=False)

    # ───────────────────────── internal helpers ────────────────────────────
    def _physical(self, row: int) -> int:
        if row < 0 or row >= len(self._rows):
            raise IndexError(f"row {row} out of range for table of {len(self._rows)} rows")
        return int(self._sort_order[row])

    def _check_col(self, col: int) -> int:
        if col < 0 or col >= len(self.columns):
            raise IndexError(f"column {col} out of range for table of {len(self.columns)} columns")
        return col


def _cell_text(cell: Cell) -> str:
    return cell if isinstance(cell, str) else str(cell)


def _all_numbers(rows: List[List[str]], col: int) -> bool:
    # a column holds numbers only if every one of its cells parses as one
    return bool(rows) and all(parse_number(r[col]) is not None for r in rows)
