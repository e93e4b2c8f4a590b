from __future__ import annotations

import pytest

from grade_import.errors import RowValidationError, ValueParseError
from grade_import.models.cell_value import FormulaResult
from grade_import.models.config_models import ColumnLayout, SheetLayout
from grade_import.models.row_candidate import RowCandidate, RowFailure
from grade_import.models.workbook import Worksheet
from grade_import.services.extract import cell_text, extract_row, extract_rows

HEADER = [["title"], [], [], [], [], []]


def _sheet(*rows):
    return Worksheet.from_values("Mathematics", HEADER + list(rows))


def test_extract_valid_row(grade_row):
    ws = _sheet(grade_row("Dara", 12, {"formula": "=X", "result": 92}, notes="good"))
    candidate = extract_row(ws, 7, subject_id=1)
    assert isinstance(candidate, RowCandidate)
    assert candidate.student_name == "Dara"
    assert candidate.student_id == 12
    assert candidate.subject_id == 1
    assert candidate.course_id == 3
    assert candidate.semester_id == 4
    assert candidate.school_year_id == 5
    assert candidate.score == 92.0
    assert candidate.period_key == "03/25"
    assert candidate.comment == "good"
    assert candidate.row_number == 7


def test_blank_name_row_is_skipped_silently(grade_row):
    ws = _sheet(grade_row(None, 12, 50), grade_row("   ", 13, 50))
    assert extract_row(ws, 7, 1) is None
    assert list(extract_rows(ws, 1)) == []


def test_missing_identifier(grade_row):
    ws = _sheet(grade_row("Sokha", None, 50))
    with pytest.raises(RowValidationError) as exc:
        extract_row(ws, 7, 1)
    assert exc.value.message == "Missing ID data for student: Sokha"
    assert exc.value.details["columns"] == ["student_id"]


def test_missing_month_and_year(grade_row):
    ws = _sheet(grade_row("Sokha", 5, 50, month=None, year=""))
    with pytest.raises(RowValidationError) as exc:
        extract_row(ws, 7, 1)
    assert exc.value.details["columns"] == ["month", "year"]


def test_identifier_as_float_or_string_is_accepted(grade_row):
    ws = _sheet(grade_row("Dara", 12.0, 10, course_id="3", month="11"))
    candidate = extract_row(ws, 7, 1)
    assert candidate.student_id == 12
    assert candidate.course_id == 3
    assert candidate.period_key == "11/25"


def test_non_numeric_identifier_is_rejected(grade_row):
    ws = _sheet(grade_row("Dara", "S-12", 10))
    with pytest.raises(RowValidationError, match="Invalid student_id"):
        extract_row(ws, 7, 1)


@pytest.mark.parametrize("month", [-1, 13])
def test_month_out_of_range(grade_row, month):
    ws = _sheet(grade_row("Dara", 12, 10, month=month))
    with pytest.raises(RowValidationError, match="Invalid month"):
        extract_row(ws, 7, 1)


def test_zero_identifier_counts_as_missing(grade_row):
    ws = _sheet(grade_row("Dara", 0, 10, month=0))
    with pytest.raises(RowValidationError) as exc:
        extract_row(ws, 7, 1)
    assert exc.value.message == "Missing ID data for student: Dara"
    assert exc.value.details["columns"] == ["student_id", "month"]


def test_year_out_of_range(grade_row):
    ws = _sheet(grade_row("Dara", 12, 10, year=25))
    with pytest.raises(RowValidationError, match="Invalid year"):
        extract_row(ws, 7, 1)


def test_literal_garbage_score(grade_row):
    ws = _sheet(grade_row("Dara", 12, "abc"))
    with pytest.raises(ValueParseError) as exc:
        extract_row(ws, 7, 1)
    assert exc.value.message == "Invalid grade for Dara: abc"


def test_subject_id_comes_from_title_not_hidden_column(grade_row):
    ws = _sheet(grade_row("Dara", 12, 10, subject_id=99))
    assert extract_row(ws, 7, subject_id=1).subject_id == 1


def test_hidden_subject_column_may_be_empty(grade_row):
    ws = _sheet(grade_row("Dara", 12, 10, subject_id=None))
    assert extract_row(ws, 7, subject_id=1) is not None


def test_extract_rows_yields_failures_and_continues(grade_row):
    ws = _sheet(
        grade_row("A", 1, 10),
        grade_row("B", None, 10),
        grade_row(None, None, None),
        grade_row("C", 3, "bad"),
        grade_row("D", 4, 40),
    )
    items = list(extract_rows(ws, 1))
    assert [type(i) for i in items] == [RowCandidate, RowFailure, RowFailure, RowCandidate]
    assert [i.row_number for i in items] == [7, 8, 10, 11]
    assert items[1].error_type == "ROW_VALIDATION_ERROR"
    assert items[2].error_type == "VALUE_PARSE_ERROR"


def test_custom_layout():
    layout = SheetLayout(
        data_start_row=2,
        columns=ColumnLayout(
            student_name=1, total=2, notes=3, student_id=4, subject_id=5,
            course_id=6, semester_id=7, school_year_id=8, month=9, year=10,
        ),
    )
    ws = Worksheet.from_values("Physics", [["hdr"], ["Vanna", 77, None, 9, None, 1, 2, 3, 4, 2026]])
    candidate = extract_row(ws, 2, 5, layout)
    assert candidate.score == 77.0
    assert candidate.period_key == "04/26"
    assert candidate.comment is None


def test_cell_text():
    assert cell_text(FormulaResult(formula="=A1")) == ""
    assert cell_text(FormulaResult(result=12.0)) == "12.0"
    assert cell_text(Worksheet.from_values("x", [[12.0]]).cell(1, 1)) == "12"
