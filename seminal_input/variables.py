# seminal_input/variables.py
"""
Per-function variable bookkeeping.

VariableRecord
    ``(name, line)`` of a declared source variable; ``line == -1`` when no
    source line is known.

VariableCatalog
    Name → most recently observed :class:`VariableRecord`.  One catalog per
    analyzed function.  Keys are unique; :meth:`VariableCatalog.record`
    overwrites, :meth:`VariableCatalog.record_if_absent` does not.

IOVariableSet
    Names of variables bound to an input-producing call.  Only the
    input-source classifier adds to it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Set

from .ir import NO_LINE

IOVariableSet = Set[str]


@dataclass(frozen=True)
class VariableRecord:
    name: str
    line: int = NO_LINE

    @property
    def has_line(self) -> bool:
        return self.line != NO_LINE


class VariableCatalog:
    """Mapping from variable name to its latest :class:`VariableRecord`."""

    def __init__(self) -> None:
        self._records: Dict[str, VariableRecord] = {}

    def record(self, rec: VariableRecord) -> None:
        """Insert *rec*, replacing any earlier record of the same name."""
        self._records[rec.name] = rec

    def record_if_absent(self, rec: VariableRecord) -> VariableRecord:
        """Insert *rec* unless the name is already cataloged.

        Returns the record held for the name afterwards.
        """
        return self._records.setdefault(rec.name, rec)

    def get(self, name: str) -> Optional[VariableRecord]:
        return self._records.get(name)

    def names(self) -> List[str]:
        return list(self._records)

    def records(self) -> List[VariableRecord]:
        return list(self._records.values())

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __iter__(self) -> Iterator[VariableRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        inner = ", ".join(f"{r.name}:{r.line}" for r in self._records.values())
        return f"VariableCatalog({inner})"
