# Shared pytest fixtures
from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook as XlsxWorkbook

from grade_import.db.grade_store import InMemoryGradeStore
from grade_import.logging.init import APP_LOGGER_NAME, reset_logging
from grade_import.models.workbook import Workbook
from grade_import.services.subjects import SubjectDirectory

HEADER_ROWS: list[list[Any]] = [
    ["Grades 03/2025"],
    [None, None, "Year:", None, 2025],
    [None, None, "Month:", None, 3],
    [None, "Name"],
    [],
    [],
]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def _fresh_logging():
    # CLI tests configure the package logger with propagate=False; undo it so
    # caplog (root handler) sees module records in later tests
    reset_logging()
    yield
    reset_logging()
    app_logger = logging.getLogger(APP_LOGGER_NAME)
    for handler in app_logger.handlers[:]:
        app_logger.removeHandler(handler)
    app_logger.propagate = True
    app_logger.setLevel(logging.NOTSET)


@pytest.fixture()
def sample_config_yaml() -> str:
    return """layout:
  data_start_row: 7
max_error_messages: 10
grade_table: grades
subject_table: subjects
subjects:
  Mathematics: 1
  Physics: 2
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def subject_directory() -> SubjectDirectory:
    return SubjectDirectory.from_mapping({"Mathematics": 1, "Physics": 2, "Khmer Literature": 3})


@pytest.fixture()
def store() -> InMemoryGradeStore:
    return InMemoryGradeStore()


@pytest.fixture()
def grade_row() -> Callable[..., list[Any]]:
    """Build one data row (columns A..R) in the template layout."""

    def _row(
        name: Any,
        student_id: Any,
        total: Any,
        *,
        notes: Any = None,
        subject_id: Any = 1,
        course_id: Any = 3,
        semester_id: Any = 4,
        school_year_id: Any = 5,
        month: Any = 3,
        year: Any = 2025,
    ) -> list[Any]:
        return [
            1,  # A no.
            name,  # B
            "M",  # C
            0, 0, 0, 0,  # D-G homework
            0,  # H
            0,  # I
            total,  # J
            notes,  # K
            student_id,  # L
            subject_id,  # M
            course_id,  # N
            semester_id,  # O
            school_year_id,  # P
            month,  # Q
            year,  # R
        ]

    return _row


@pytest.fixture()
def make_workbook() -> Callable[[dict[str, list[list[Any]]]], Workbook]:
    """{title: data rows} -> Workbook with an instructions sheet and header rows 1-6."""

    def _make(sheets: dict[str, list[list[Any]]]) -> Workbook:
        values: dict[str, list[list[Any]]] = {"Instructions": [["How to use"]]}
        for title, rows in sheets.items():
            values[title] = HEADER_ROWS + rows
        return Workbook.from_values(values)

    return _make


@pytest.fixture()
def write_xlsx(tmp_path: Path) -> Callable[..., Path]:
    """Write {title: rows} (header rows included by caller) to a real .xlsx with openpyxl."""

    def _write(sheets: dict[str, list[list[Any]]], name: str = "grades.xlsx") -> Path:
        wb = XlsxWorkbook()
        first = True
        for title, rows in sheets.items():
            if first:
                ws = wb.active
                ws.title = title
                first = False
            else:
                ws = wb.create_sheet(title=title)
            for r, row in enumerate(rows, start=1):
                for c, value in enumerate(row, start=1):
                    if value is not None:
                        ws.cell(row=r, column=c, value=value)
        path = tmp_path / name
        wb.save(path)
        return path

    return _write
