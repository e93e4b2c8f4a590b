from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .cell_value import EMPTY, CellValue, classify_cell

"""In-memory workbook abstraction consumed by the import pipeline.

Rows and columns are 1-based, matching the numbering users see in Excel.
Sheet 0 is the instructions sheet, sheets 1..n-1 hold one subject each.
"""

__all__ = [
    "Workbook",
    "Worksheet",
]


@dataclass(frozen=True)
class Worksheet:
    title: str
    rows: list[list[CellValue]]  # rows[0] == Excel row 1

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def cell(self, row: int, column: int) -> CellValue:
        """Return the cell at (row, column), EMPTY when outside the used range."""
        if row < 1 or column < 1 or row > len(self.rows):
            return EMPTY
        cells = self.rows[row - 1]
        if column > len(cells):
            return EMPTY
        return cells[column - 1]

    @classmethod
    def from_values(cls, title: str, rows: Sequence[Sequence[Any]]) -> Worksheet:
        return cls(title=title, rows=[[classify_cell(v) for v in row] for row in rows])


@dataclass(frozen=True)
class Workbook:
    worksheets: list[Worksheet]

    @property
    def sheet_titles(self) -> list[str]:
        return [ws.title for ws in self.worksheets]

    def __len__(self) -> int:
        return len(self.worksheets)

    @classmethod
    def from_values(cls, sheets: Mapping[str, Sequence[Sequence[Any]]]) -> Workbook:
        """Build a workbook from {title: rows} in insertion order."""
        return cls(worksheets=[Worksheet.from_values(t, rows) for t, rows in sheets.items()])
