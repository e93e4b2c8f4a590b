"""Excel grade import: reconcile a class's monthly subject grades workbook
against the grade store."""

from .errors import (
    ConfigError,
    GradeImportError,
    PersistenceError,
    RowValidationError,
    StructuralError,
    SubjectResolutionError,
    ValueParseError,
    WorkbookReadError,
)
from .models.processing_result import ImportOutcome, ImportResult, OutcomeTag
from .services.orchestrator import import_file, import_workbook

__all__ = [
    "ConfigError",
    "GradeImportError",
    "ImportOutcome",
    "ImportResult",
    "OutcomeTag",
    "PersistenceError",
    "RowValidationError",
    "StructuralError",
    "SubjectResolutionError",
    "ValueParseError",
    "WorkbookReadError",
    "import_file",
    "import_workbook",
]

__version__ = "0.3.0"
