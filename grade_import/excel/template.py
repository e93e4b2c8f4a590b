from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path

from openpyxl import Workbook as XlsxWorkbook
from openpyxl.styles import Alignment, Font, Protection
from openpyxl.utils import get_column_letter

from ..models.config_models import DEFAULT_LAYOUT, SheetLayout

"""Grade template builder.

Produces the workbook the importer consumes:

- sheet 0: instructions
- one sheet per subject, titled with the subject name
- rows 1-6: title, period header and column headers
- from row 7: one row per student

Data row columns (1-based):
A no. | B name | C gender | D-G homework 1-4 | H homework average (formula)
I exam | J monthly total (formula) | K notes | L-R hidden identifiers
(student, subject, course, semester, school year, month, year)

H4 holds the homework weight in percent, I4 the exam weight (100-H4) and
G5 the number of homework assignments counted in the average.
"""

__all__ = [
    "INSTRUCTIONS_TITLE",
    "TemplateContext",
    "TemplateStudent",
    "TemplateSubject",
    "build_template",
    "template_bytes",
]

INSTRUCTIONS_TITLE = "Instructions"

HOMEWORK_COLUMNS = (4, 5, 6, 7)  # D-G
HOMEWORK_AVERAGE_COLUMN = 8  # H
EXAM_COLUMN = 9  # I
DEFAULT_HOMEWORK_WEIGHT = 0
DEFAULT_HOMEWORK_COUNT = 4

_INSTRUCTIONS = (
    ("Step 1", "Enter homework scores in columns D to G and the exam score in column I."),
    ("Step 2", "Set the number of homework assignments in G5 and the homework weight in H4."),
    ("Step 3", "The homework average (H) and the monthly total (J) are calculated automatically."),
    ("Step 4", "Write remarks for a student in the notes column (K)."),
    ("Step 5", "Save the file and upload it on the grade import page."),
)
_NOTES = (
    "Do not rename the subject sheets: the sheet title selects the subject.",
    "Do not edit or delete the hidden columns L to R.",
    "Rows without a student name are ignored.",
)

_CENTER = Alignment(horizontal="center", vertical="center", wrap_text=True)
_BOLD = Font(bold=True)
_UNLOCKED = Protection(locked=False)


@dataclass(frozen=True)
class TemplateStudent:
    student_id: int
    name: str
    gender: str | None = None


@dataclass(frozen=True)
class TemplateSubject:
    subject_id: int
    name: str


@dataclass(frozen=True)
class TemplateContext:
    course_id: int
    semester_id: int
    school_year_id: int
    month: int
    year: int
    subjects: list[TemplateSubject] = field(default_factory=list)
    students: list[TemplateStudent] = field(default_factory=list)
    course_name: str | None = None
    semester_name: str | None = None
    school_year_code: str | None = None
    password: str | None = None  # sheet protection password (None = unprotected)


def _instructions_sheet(ws) -> None:
    ws.column_dimensions["A"].width = 15
    ws.column_dimensions["B"].width = 70
    ws["A1"] = "How to use the grade template"
    ws["A1"].font = Font(bold=True, size=16)
    ws.merge_cells("A1:B1")

    row = 3
    for step, text in _INSTRUCTIONS:
        ws.cell(row=row, column=1, value=step).font = _BOLD
        ws.cell(row=row, column=2, value=text).alignment = Alignment(wrap_text=True)
        row += 1

    row += 1
    ws.cell(row=row, column=1, value="Important:").font = Font(bold=True, color="FFCC0000")
    row += 1
    for note in _NOTES:
        ws.cell(row=row, column=2, value=note).alignment = Alignment(wrap_text=True)
        row += 1


def _header_rows(ws, ctx: TemplateContext, subject: TemplateSubject) -> None:
    ws.merge_cells("A1:K1")
    ws["A1"] = f"{subject.name} grades {ctx.month:02d}/{ctx.year}"
    ws["A1"].font = Font(bold=True, size=14)
    ws["A1"].alignment = _CENTER

    ws["C2"], ws["E2"] = "Year:", ctx.year
    ws["H2"], ws["I2"] = "Semester:", ctx.semester_name or ctx.semester_id
    ws["J2"], ws["K2"] = "School year:", ctx.school_year_code or ctx.school_year_id
    ws["C3"], ws["E3"] = "Month:", ctx.month
    ws["H3"], ws["I3"] = "Class:", ctx.course_name or ctx.course_id
    ws["J3"], ws["K3"] = "Subject:", subject.name

    for ref, label in (("A4", "No."), ("B4", "Name"), ("C4", "Gender"), ("J4", "Monthly total"), ("K4", "Notes")):
        ws.merge_cells(f"{ref}:{ref[0]}6")
        ws[ref] = label
    ws.merge_cells("D4:G4")
    ws["D4"] = "Homework"
    ws["H4"] = DEFAULT_HOMEWORK_WEIGHT
    ws["I4"] = "=100-H4"
    ws.merge_cells("D5:F5")
    ws["D5"] = "Homework count"
    ws["G5"] = DEFAULT_HOMEWORK_COUNT
    ws.merge_cells("H5:H6")
    ws["H5"] = "Homework average"
    ws.merge_cells("I5:I6")
    ws["I5"] = "Exam"
    for offset, col in enumerate(HOMEWORK_COLUMNS, start=1):
        ws.cell(row=6, column=col, value=f"HW{offset}")

    for row in ws.iter_rows(min_row=4, max_row=6, min_col=1, max_col=11):
        for cell in row:
            cell.font = _BOLD
            cell.alignment = _CENTER

    # weights and homework count are the only editable header cells
    for ref in ("H4", "G5"):
        ws[ref].protection = _UNLOCKED


def _student_row(
    ws,
    row: int,
    index: int,
    ctx: TemplateContext,
    subject: TemplateSubject,
    student: TemplateStudent,
    layout: SheetLayout,
) -> None:
    cols = layout.columns
    ws.cell(row=row, column=1, value=index)
    ws.cell(row=row, column=cols.student_name, value=student.name)
    ws.cell(row=row, column=3, value=student.gender)
    for col in (*HOMEWORK_COLUMNS, EXAM_COLUMN):
        cell = ws.cell(row=row, column=col, value=0)
        cell.number_format = "0.00"
        cell.protection = _UNLOCKED

    ws.cell(
        row=row,
        column=HOMEWORK_AVERAGE_COLUMN,
        value=f'=IF(B{row}="","",IF($G$5=0,0,SUM(OFFSET(D{row},0,0,1,$G$5))/$G$5))',
    ).number_format = "0.00"
    ws.cell(
        row=row,
        column=cols.total,
        value=(
            f'=IF(B{row}="","",IF($G$5=0,(($I$4*(I{row}/10))/10)+($H$4/10),'
            f"($H$4*(H{row}/10)+$I$4*(I{row}/10))/10))"
        ),
    ).number_format = "0.00"
    ws.cell(row=row, column=cols.notes, value=None).protection = _UNLOCKED

    hidden = {
        cols.student_id: student.student_id,
        cols.subject_id: subject.subject_id,
        cols.course_id: ctx.course_id,
        cols.semester_id: ctx.semester_id,
        cols.school_year_id: ctx.school_year_id,
        cols.month: ctx.month,
        cols.year: ctx.year,
    }
    for col, value in hidden.items():
        ws.cell(row=row, column=col, value=value)


def _hidden_columns(layout: SheetLayout) -> list[int]:
    cols = layout.columns
    return [
        cols.student_id,
        cols.subject_id,
        cols.course_id,
        cols.semester_id,
        cols.school_year_id,
        cols.month,
        cols.year,
    ]


def build_template(
    ctx: TemplateContext,
    path: Path | str | None = None,
    *,
    layout: SheetLayout = DEFAULT_LAYOUT,
) -> XlsxWorkbook:
    """Build the grade template workbook (saved to `path` when given).

    Raises:
        ValueError: no subjects, or month outside 1-12
    """
    if not ctx.subjects:
        raise ValueError("template needs at least one subject")
    if not 1 <= ctx.month <= 12:
        raise ValueError(f"invalid month: {ctx.month}")

    wb = XlsxWorkbook()
    instructions = wb.active
    instructions.title = INSTRUCTIONS_TITLE
    _instructions_sheet(instructions)

    for subject in ctx.subjects:
        ws = wb.create_sheet(title=subject.name)
        ws.column_dimensions["A"].width = 6
        ws.column_dimensions["B"].width = 20
        ws.column_dimensions["K"].width = 40
        _header_rows(ws, ctx, subject)

        for index, student in enumerate(ctx.students, start=1):
            _student_row(ws, layout.data_start_row + index - 1, index, ctx, subject, student, layout)

        for col in _hidden_columns(layout):
            ws.column_dimensions[get_column_letter(col)].hidden = True

        if ctx.password is not None:
            ws.protection.sheet = True
            ws.protection.password = ctx.password

    if ctx.password is not None:
        instructions.protection.sheet = True
        instructions.protection.password = ctx.password

    if path is not None:
        wb.save(Path(path))
    return wb


def template_bytes(ctx: TemplateContext, *, layout: SheetLayout = DEFAULT_LAYOUT) -> bytes:
    buffer = BytesIO()
    build_template(ctx, layout=layout).save(buffer)
    return buffer.getvalue()
