from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the grade import pipeline.

ColumnLayout pins where each field lives on a subject worksheet. The
defaults match the generated grade template: visible columns B (student
name), J (monthly total), K (notes), and the hidden identifier columns L-R.
"""

__all__ = [
    "ColumnLayout",
    "DEFAULT_LAYOUT",
    "DatabaseConfig",
    "ImportConfig",
    "SheetLayout",
]


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback configuration.

    Environment variables (.env, DATABASE_URL, PG*) take precedence over
    these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ColumnLayout:
    """1-based column numbers of a subject worksheet."""
    student_name: int = 2  # B
    total: int = 10  # J monthly total (usually a formula)
    notes: int = 11  # K
    student_id: int = 12  # L (hidden)
    subject_id: int = 13  # M (hidden)
    course_id: int = 14  # N (hidden)
    semester_id: int = 15  # O (hidden)
    school_year_id: int = 16  # P (hidden)
    month: int = 17  # Q (hidden)
    year: int = 18  # R (hidden)


@dataclass(frozen=True)
class SheetLayout:
    data_start_row: int = 7  # rows 1-6: title, course info and column headers
    columns: ColumnLayout = field(default_factory=ColumnLayout)


DEFAULT_LAYOUT = SheetLayout()


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object loaded from config/import.yml."""
    layout: SheetLayout = DEFAULT_LAYOUT
    max_error_messages: int = 10
    grade_table: str = "grades"
    subject_table: str = "subjects"
    subjects: dict[str, int] | None = None  # static catalog for mock mode
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
