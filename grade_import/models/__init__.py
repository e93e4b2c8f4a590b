"""Domain models for the Excel grade import pipeline."""

from .cell_value import EMPTY, CellValue, EmptyCell, FormulaResult, LiteralCell, classify_cell
from .config_models import DEFAULT_LAYOUT, ColumnLayout, DatabaseConfig, ImportConfig, SheetLayout
from .error_record import ErrorRecord
from .grade_record import DecisionKind, GradeRecord, ReconcileDecision
from .processing_result import ImportOutcome, ImportResult, OutcomeTag
from .row_candidate import GradeIdentity, RowCandidate, RowFailure
from .workbook import Workbook, Worksheet

__all__ = [
    # Cell values
    "CellValue",
    "EMPTY",
    "EmptyCell",
    "FormulaResult",
    "LiteralCell",
    "classify_cell",
    # Configuration models
    "ColumnLayout",
    "DEFAULT_LAYOUT",
    "DatabaseConfig",
    "ImportConfig",
    "SheetLayout",
    # Processing models
    "DecisionKind",
    "ErrorRecord",
    "GradeIdentity",
    "GradeRecord",
    "ImportOutcome",
    "ImportResult",
    "OutcomeTag",
    "ReconcileDecision",
    "RowCandidate",
    "RowFailure",
    "Workbook",
    "Worksheet",
]
