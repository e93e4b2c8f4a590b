from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from ..errors import SubjectResolutionError

"""Subject resolver.

The subject catalog is loaded once per job into an immutable SubjectDirectory
and worksheet titles are matched purely in memory, first match wins:

1. exact title
2. title with surrounding whitespace trimmed
3. case-insensitive (casefold) comparison of the trimmed title

Case-insensitive ties go to the first name in catalog order.
"""

__all__ = [
    "MatchStrategy",
    "SubjectDirectory",
    "SubjectMatch",
    "require_subject",
    "resolve_subject",
]

logger = logging.getLogger(__name__)


class MatchStrategy(Enum):
    EXACT = "exact"
    TRIMMED = "trimmed"
    CASE_INSENSITIVE = "case_insensitive"


@dataclass(frozen=True)
class SubjectMatch:
    title: str  # worksheet title as written
    subject_name: str  # catalog name it resolved to
    subject_id: int
    strategy: MatchStrategy


class SubjectDirectory:
    """Read-only mapping of subject name -> subject id."""

    def __init__(self, subjects: Mapping[str, int]) -> None:
        self._by_name: Mapping[str, int] = MappingProxyType(dict(subjects))
        folded: dict[str, str] = {}
        for name in self._by_name:
            folded.setdefault(name.casefold(), name)
        self._by_folded: Mapping[str, str] = MappingProxyType(folded)

    @classmethod
    def from_mapping(cls, subjects: Mapping[str, int]) -> SubjectDirectory:
        return cls(subjects)

    @classmethod
    def from_rows(cls, rows: Iterable[tuple[str, int]]) -> SubjectDirectory:
        """Build from (name, id) pairs, e.g. rows fetched from the subjects table."""
        return cls({str(name): int(subject_id) for name, subject_id in rows})

    def get(self, name: str) -> int | None:
        return self._by_name.get(name)

    def get_casefold(self, name: str) -> str | None:
        return self._by_folded.get(name.casefold())

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_name)

    def __len__(self) -> int:
        return len(self._by_name)

    @property
    def names(self) -> list[str]:
        return list(self._by_name)


def resolve_subject(title: str, directory: SubjectDirectory) -> SubjectMatch | None:
    """Resolve a worksheet title to a subject, None when no strategy matches."""
    subject_id = directory.get(title)
    if subject_id is not None:
        return SubjectMatch(title, title, subject_id, MatchStrategy.EXACT)

    trimmed = title.strip()
    subject_id = directory.get(trimmed)
    if subject_id is not None:
        logger.debug("subject %r matched after trimming -> %r", title, trimmed)
        return SubjectMatch(title, trimmed, subject_id, MatchStrategy.TRIMMED)

    name = directory.get_casefold(trimmed)
    if name is not None:
        logger.debug("subject %r matched case-insensitively -> %r", title, name)
        return SubjectMatch(title, name, directory.get(name), MatchStrategy.CASE_INSENSITIVE)  # type: ignore[arg-type]

    return None


def require_subject(title: str, directory: SubjectDirectory) -> SubjectMatch:
    """Like resolve_subject() but raises SubjectResolutionError on a miss."""
    match = resolve_subject(title, directory)
    if match is None:
        logger.warning(
            "subject %r not found; available subjects: %s", title, directory.names
        )
        raise SubjectResolutionError(title)
    return match
