from __future__ import annotations

from typing import Any

"""Exception hierarchy for the grade import pipeline.

Scope of each error (what the pipeline does when it sees one):

- StructuralError / WorkbookReadError: whole workbook, the job aborts with no result
- SubjectResolutionError: one worksheet is skipped, one aggregate error recorded
- RowValidationError / ValueParseError: one row is skipped and recorded
- PersistenceError: one write failed, recorded, the job continues

`error_type` is the UPPER_SNAKE label written to the JSON Lines error log.
"""

__all__ = [
    "GradeImportError",
    "ConfigError",
    "WorkbookReadError",
    "StructuralError",
    "SubjectResolutionError",
    "RowValidationError",
    "ValueParseError",
    "PersistenceError",
]


class GradeImportError(Exception):
    """Base error carrying a human readable message and optional details."""

    error_type = "IMPORT_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigError(GradeImportError):
    error_type = "CONFIG_ERROR"


class WorkbookReadError(GradeImportError):
    """Raised when the uploaded file cannot be opened as a workbook."""

    error_type = "WORKBOOK_READ_ERROR"


class StructuralError(GradeImportError):
    """Raised when the workbook lacks the instructions sheet + subject sheets shape."""

    error_type = "STRUCTURAL_ERROR"


class SubjectResolutionError(GradeImportError):
    """Raised when a worksheet title matches no subject in the catalog."""

    error_type = "SUBJECT_NOT_FOUND"

    def __init__(self, title: str) -> None:
        self.title = title
        super().__init__(f'Subject "{title}" not found', details={"sheet": title})


class RowValidationError(GradeImportError):
    error_type = "ROW_VALIDATION_ERROR"


class ValueParseError(GradeImportError):
    error_type = "VALUE_PARSE_ERROR"


class PersistenceError(GradeImportError):
    """Wraps a store/driver failure for a single grade write."""

    error_type = "PERSISTENCE_ERROR"
