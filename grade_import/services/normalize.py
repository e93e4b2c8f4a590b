from __future__ import annotations

import math
from typing import Any

from ..errors import ValueParseError
from ..models.cell_value import CellValue, EmptyCell, FormulaResult, classify_cell

"""Cell value and period key normalizers.

normalize_score() turns a score cell into a float:

- empty / None / "0" / numeric 0 -> 0.0 (explicit zero is a valid score)
- FormulaResult -> result, value, text, then the container's string form;
  an unparseable computed cell means "no score yet" and becomes 0.0
- literal -> float, or ValueParseError when it does not parse

No range is enforced; score scales differ per subject and grade level.
"""

__all__ = [
    "normalize_score",
    "parse_float",
    "period_key",
]


def parse_float(raw: Any) -> float | None:
    """Parse a cell payload as a finite float, None when it is not a number."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        number = float(raw)
    else:
        try:
            number = float(str(raw).strip())
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def normalize_score(cell: CellValue | Any) -> float:
    cell = classify_cell(cell)
    if isinstance(cell, EmptyCell):
        return 0.0

    if isinstance(cell, FormulaResult):
        parsed = parse_float(cell.extract())
        # uncomputed / error results (#DIV/0!, "") count as no score yet
        return 0.0 if parsed is None else parsed

    raw = cell.value
    if raw is None or str(raw).strip() in ("", "0"):
        return 0.0
    parsed = parse_float(raw)
    if parsed is None:
        raise ValueParseError(
            f"unparseable score: {raw}",
            details={"value": str(raw)},
        )
    return parsed


def period_key(month: int | str, year: int | str) -> str:
    """Return the "MM/YY" period key, e.g. (3, 2026) -> "03/26".

    Years sharing their last two digits (2025, 2125) map to the same key.
    """
    month_str = str(int(month)).zfill(2)
    year_str = str(int(year))[-2:]
    return f"{month_str}/{year_str}"
