from __future__ import annotations

import logging

from ..errors import StructuralError
from ..models.workbook import Workbook, Worksheet

__all__ = [
    "MIN_WORKSHEETS",
    "validate_structure",
]

logger = logging.getLogger(__name__)

MIN_WORKSHEETS = 2  # instructions sheet + at least one subject sheet


def validate_structure(workbook: Workbook) -> list[Worksheet]:
    """Check workbook-level preconditions and return the subject sheets.

    Sheet 0 is the instructions sheet and is always skipped.

    Raises:
        StructuralError: if the workbook has fewer than two worksheets
    """
    if len(workbook.worksheets) < MIN_WORKSHEETS:
        raise StructuralError(
            "workbook must contain at least 2 worksheets "
            "(instructions + subject sheets)",
            details={"worksheets": workbook.sheet_titles},
        )
    subject_sheets = workbook.worksheets[1:]
    logger.debug(
        "structure ok: skipping instructions sheet=%r subject_sheets=%s",
        workbook.worksheets[0].title,
        [ws.title for ws in subject_sheets],
    )
    return subject_sheets
