from __future__ import annotations

from pathlib import Path

import pandas as pd

from ..models.processing_result import ImportResult
from ..models.workbook import Workbook
from .extract import cell_text

"""Per-row outcome report and workbook preview (pandas).

outcomes_frame() flattens ImportResult.outcomes into one DataFrame row per
outcome (sheet, row, outcome, grade_id, message). write_outcome_report()
writes it as .csv or .xlsx depending on the file suffix.
"""

__all__ = [
    "OUTCOME_COLUMNS",
    "outcomes_frame",
    "preview_frame",
    "write_outcome_report",
]

OUTCOME_COLUMNS = ["sheet", "row", "outcome", "grade_id", "message"]


def outcomes_frame(result: ImportResult) -> pd.DataFrame:
    records = [
        {
            "sheet": o.sheet,
            "row": o.row,
            "outcome": o.tag.value,
            "grade_id": o.grade_id,
            "message": o.message,
        }
        for o in result.outcomes
    ]
    frame = pd.DataFrame.from_records(records, columns=OUTCOME_COLUMNS)
    # keep ids integral even when some rows have none
    frame["grade_id"] = frame["grade_id"].astype("Int64")
    return frame


def write_outcome_report(result: ImportResult, path: Path | str) -> Path:
    """Write the per-row outcome report; the suffix picks the format.

    Raises:
        ValueError: unsupported suffix (only .csv and .xlsx)
    """
    path = Path(path)
    frame = outcomes_frame(result)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        frame.to_csv(path, index=False)
    elif suffix == ".xlsx":
        frame.to_excel(path, index=False, sheet_name="outcomes", engine="openpyxl")
    else:
        raise ValueError(f"unsupported report format: {path.suffix or '<none>'} (use .csv or .xlsx)")
    return path


def preview_frame(workbook: Workbook, title: str, start_row: int, n_rows: int = 3) -> pd.DataFrame:
    """Display text of the first `n_rows` rows of a sheet from `start_row`.

    Columns are 1-based column numbers; empty cells render as "".

    Raises:
        KeyError: no worksheet with that title
    """
    matches = [ws for ws in workbook.worksheets if ws.title == title]
    if not matches:
        raise KeyError(title)
    worksheet = matches[0]
    last = min(worksheet.row_count, start_row + n_rows - 1)
    rows = {
        r: [cell_text(c) for c in worksheet.rows[r - 1]]
        for r in range(start_row, last + 1)
    }
    width = max((len(v) for v in rows.values()), default=0)
    frame = pd.DataFrame(
        [v + [""] * (width - len(v)) for v in rows.values()],
        index=list(rows.keys()),
        columns=list(range(1, width + 1)),
    )
    frame.index.name = "row"
    return frame
