from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from ..errors import RowValidationError, ValueParseError
from ..models.cell_value import CellValue, EmptyCell, FormulaResult, LiteralCell
from ..models.config_models import DEFAULT_LAYOUT, SheetLayout
from ..models.row_candidate import RowCandidate, RowFailure
from ..models.workbook import Worksheet
from .normalize import normalize_score, parse_float, period_key

"""Row extractor for subject worksheets.

Reads the fixed column layout of each data row (from layout.data_start_row):

1. blank student name -> row skipped silently (separator rows are expected)
2. identifier cells (student, course, semester, school year, month, year)
   missing or malformed -> RowValidationError, the sheet continues
3. monthly total -> normalize_score(); literal garbage -> ValueParseError
4. month/year -> period key

The subject id comes from the resolved worksheet title. The hidden subject
id column is only compared for diagnostics.
"""

__all__ = [
    "IDENTIFIER_FIELDS",
    "cell_text",
    "extract_row",
    "extract_rows",
]

logger = logging.getLogger(__name__)

# attribute names on ColumnLayout, in the order they are validated
IDENTIFIER_FIELDS = (
    "student_id",
    "course_id",
    "semester_id",
    "school_year_id",
    "month",
    "year",
)


def cell_text(cell: CellValue) -> str:
    """Stripped display text of a cell ("" for empty / uncomputed cells)."""
    if isinstance(cell, EmptyCell):
        return ""
    if isinstance(cell, FormulaResult):
        return str(cell.extract()).strip() if cell.has_field else ""
    value = cell.value if isinstance(cell, LiteralCell) else cell
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _payload(cell: CellValue) -> Any:
    if isinstance(cell, FormulaResult):
        return cell.extract() if cell.has_field else None
    if isinstance(cell, LiteralCell):
        return cell.value
    return None


def _coerce_int(cell: CellValue) -> int | None:
    """Integer value of an identifier cell (12, 12.0, "12"), None otherwise."""
    number = parse_float(_payload(cell))
    if number is None or not number.is_integer():
        return None
    return int(number)


def extract_row(
    worksheet: Worksheet,
    row_number: int,
    subject_id: int,
    layout: SheetLayout = DEFAULT_LAYOUT,
) -> RowCandidate | None:
    """Extract one data row. Returns None for a blank (separator) row.

    Raises:
        RowValidationError: identifier cell missing or not a valid number
        ValueParseError: literal score cell that is not a number
    """
    cols = layout.columns
    student_name = cell_text(worksheet.cell(row_number, cols.student_name))
    if not student_name:
        return None

    cells = {name: worksheet.cell(row_number, getattr(cols, name)) for name in IDENTIFIER_FIELDS}
    missing = [name for name, cell in cells.items() if not cell_text(cell)]
    if missing:
        raise RowValidationError(
            f"Missing ID data for student: {student_name}",
            details={"sheet": worksheet.title, "row": row_number, "columns": missing},
        )

    ids: dict[str, int] = {}
    for name, cell in cells.items():
        value = _coerce_int(cell)
        if value is None:
            raise RowValidationError(
                f"Invalid {name} for student {student_name}: {cell_text(cell)}",
                details={"sheet": worksheet.title, "row": row_number, "column": name, "value": cell_text(cell)},
            )
        ids[name] = value

    # a zero identifier is treated the same as an empty cell
    zeros = [name for name, value in ids.items() if value == 0]
    if zeros:
        raise RowValidationError(
            f"Missing ID data for student: {student_name}",
            details={"sheet": worksheet.title, "row": row_number, "columns": zeros},
        )

    if not 1 <= ids["month"] <= 12:
        raise RowValidationError(
            f"Invalid month for student {student_name}: {ids['month']}",
            details={"sheet": worksheet.title, "row": row_number, "column": "month", "value": ids["month"]},
        )
    if not 1000 <= ids["year"] <= 9999:
        raise RowValidationError(
            f"Invalid year for student {student_name}: {ids['year']}",
            details={"sheet": worksheet.title, "row": row_number, "column": "year", "value": ids["year"]},
        )

    sheet_subject = _coerce_int(worksheet.cell(row_number, cols.subject_id))
    if sheet_subject is not None and sheet_subject != subject_id:
        logger.debug(
            "sheet=%r row=%d hidden subject id %s differs from resolved subject %s (using resolved)",
            worksheet.title, row_number, sheet_subject, subject_id,
        )

    score_cell = worksheet.cell(row_number, cols.total)
    try:
        score = normalize_score(score_cell)
    except ValueParseError as e:
        raise ValueParseError(
            f"Invalid grade for {student_name}: {cell_text(score_cell)}",
            details={"sheet": worksheet.title, "row": row_number, "column": "total", **e.details},
        ) from e

    comment = cell_text(worksheet.cell(row_number, cols.notes)) or None

    return RowCandidate(
        sheet_title=worksheet.title,
        row_number=row_number,
        student_name=student_name,
        student_id=ids["student_id"],
        subject_id=subject_id,
        course_id=ids["course_id"],
        semester_id=ids["semester_id"],
        school_year_id=ids["school_year_id"],
        month=ids["month"],
        year=ids["year"],
        score_cell=score_cell,
        score=score,
        period_key=period_key(ids["month"], ids["year"]),
        comment=comment,
    )


def extract_rows(
    worksheet: Worksheet,
    subject_id: int,
    layout: SheetLayout = DEFAULT_LAYOUT,
) -> Iterator[RowCandidate | RowFailure]:
    """Yield a RowCandidate or RowFailure per non-blank data row, in sheet order."""
    for row_number in range(layout.data_start_row, worksheet.row_count + 1):
        try:
            candidate = extract_row(worksheet, row_number, subject_id, layout)
        except (RowValidationError, ValueParseError) as e:
            logger.debug("sheet=%r row=%d rejected: %s", worksheet.title, row_number, e.message)
            yield RowFailure(sheet_title=worksheet.title, row_number=row_number, error=e)
            continue
        if candidate is not None:
            yield candidate
