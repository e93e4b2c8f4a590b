from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

"""Cell value variants for worksheet cells.

A cell read from a grade workbook is one of:

- EmptyCell: nothing entered (None / blank string)
- LiteralCell: a value typed by the user (number, string, bool, date)
- FormulaResult: a formula cell carrying its previously computed result

FormulaResult mirrors the shapes that computed cells arrive in: the cached
result from the workbook, a `value` field, or a `text` rendering. Any of
them may be absent (a formula that was never calculated has no cached
result).
"""

__all__ = [
    "CellValue",
    "EMPTY",
    "EmptyCell",
    "FormulaResult",
    "LiteralCell",
    "classify_cell",
]

_CONTAINER_KEYS = ("result", "value", "text")


@dataclass(frozen=True)
class EmptyCell:
    def __str__(self) -> str:
        return ""


@dataclass(frozen=True)
class LiteralCell:
    value: Any

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class FormulaResult:
    """Computed cell. `formula` keeps the container's own textual form."""
    result: Any = None
    value: Any = None
    text: str | None = None
    formula: str | None = None

    @property
    def has_field(self) -> bool:
        return any(v is not None for v in (self.result, self.value, self.text))

    def extract(self) -> Any:
        """Return result -> value -> text, else the container's string form."""
        for candidate in (self.result, self.value, self.text):
            if candidate is not None:
                return candidate
        return str(self)

    def __str__(self) -> str:
        return self.formula or ""


CellValue = Union[EmptyCell, LiteralCell, FormulaResult]

EMPTY = EmptyCell()


def classify_cell(raw: Any) -> CellValue:
    """Build the cell variant for a raw Python value.

    Mappings are treated as formula-result containers: known keys are picked
    up, and the mapping's `formula` (or its repr when there is none) becomes
    the fallback text.
    """
    if isinstance(raw, (EmptyCell, LiteralCell, FormulaResult)):
        return raw
    if raw is None:
        return EMPTY
    if isinstance(raw, str) and raw.strip() == "":
        return EMPTY
    if isinstance(raw, Mapping):
        fields = {k: raw[k] for k in _CONTAINER_KEYS if k in raw}
        formula = raw.get("formula") or raw.get("sharedFormula")
        return FormulaResult(
            result=fields.get("result"),
            value=fields.get("value"),
            text=None if fields.get("text") is None else str(fields["text"]),
            formula=str(formula) if formula else str(dict(raw)),
        )
    return LiteralCell(raw)
