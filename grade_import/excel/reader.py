from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.worksheet.formula import ArrayFormula, DataTableFormula

from ..errors import WorkbookReadError
from ..models.cell_value import EMPTY, CellValue, FormulaResult, classify_cell
from ..models.workbook import Workbook, Worksheet

"""Excel reader for grade workbooks.

The workbook is opened twice with openpyxl:

- formula pass (data_only=False): tells which cells hold a formula
- value pass (data_only=True): the results Excel cached on last save

Formula cells become FormulaResult containers (numeric cache -> result,
text cache -> text, no cache -> neither), every other cell goes through
classify_cell(). Row and column positions are preserved exactly (leading
empty rows/columns are kept) because the import relies on a fixed layout.
"""

__all__ = [
    "read_workbook",
]


def _formula_text(raw: Any) -> str | None:
    if isinstance(raw, ArrayFormula):
        return raw.text
    if isinstance(raw, DataTableFormula):
        return "=TABLE()"
    if isinstance(raw, str) and raw.startswith("="):
        return raw
    return None


def _to_cell(formula_raw: Any, cached: Any) -> CellValue:
    formula = _formula_text(formula_raw)
    if formula is None:
        return classify_cell(cached if cached is not None else formula_raw)
    if cached is None:
        return FormulaResult(formula=formula)
    if isinstance(cached, str):
        return FormulaResult(text=cached, formula=formula)
    return FormulaResult(result=cached, formula=formula)


def _sheet_rows(formula_ws: Any, value_ws: Any) -> list[list[CellValue]]:
    max_row = max(formula_ws.max_row or 0, value_ws.max_row or 0)
    max_col = max(formula_ws.max_column or 0, value_ws.max_column or 0)
    rows: list[list[CellValue]] = []
    formula_rows = formula_ws.iter_rows(min_row=1, max_row=max_row, min_col=1, max_col=max_col, values_only=True)
    value_rows = value_ws.iter_rows(min_row=1, max_row=max_row, min_col=1, max_col=max_col, values_only=True)
    for f_row, v_row in zip(formula_rows, value_rows, strict=False):
        cells = [_to_cell(f, v) for f, v in zip(f_row, v_row, strict=False)]
        while cells and cells[-1] is EMPTY:
            cells.pop()
        rows.append(cells)
    # drop trailing empty rows
    while rows and not rows[-1]:
        rows.pop()
    return rows


def read_workbook(source: Path | str | bytes) -> Workbook:
    """Read an .xlsx file (path or raw bytes) into the in-memory Workbook.

    Raises:
        WorkbookReadError: the source is missing or not a readable workbook
    """
    try:
        if isinstance(source, bytes):
            formula_wb = load_workbook(BytesIO(source), data_only=False)
            value_wb = load_workbook(BytesIO(source), data_only=True)
        else:
            path = Path(source)
            if not path.exists():
                raise WorkbookReadError(f"workbook not found: {path}")
            formula_wb = load_workbook(path, data_only=False)
            value_wb = load_workbook(path, data_only=True)
    except WorkbookReadError:
        raise
    except Exception as e:
        raise WorkbookReadError(f"failed to read workbook: {e}") from e

    try:
        worksheets = [
            Worksheet(title=f_ws.title, rows=_sheet_rows(f_ws, value_wb[f_ws.title]))
            for f_ws in formula_wb.worksheets
        ]
    finally:
        formula_wb.close()
        value_wb.close()
    return Workbook(worksheets=worksheets)
