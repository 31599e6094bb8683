# seminal_input/report.py
"""
Report assembly and persistence.

A :class:`FunctionReport` lists the cataloged variables of one function
that were confirmed as fed by input.  Functions without any are left out of
the :class:`Report` entirely.  The report is written once, at the end of a
run, as a JSON array::

    [
        {
            "function": "main",
            "important_variables": [
                {"type": "IO", "name": "x", "line": 3}
            ]
        }
    ]
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .errors import ReportWriteError
from .variables import IOVariableSet, VariableCatalog

_log = logging.getLogger(__name__)

DEFAULT_REPORT_PATH = "seminal-values.json"
IO_TYPE = "IO"


@dataclass(frozen=True)
class ImportantVariable:
    name: str
    line: int
    type: str = IO_TYPE

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "name": self.name, "line": self.line}


@dataclass
class FunctionReport:
    function: str
    important_variables: List[ImportantVariable] = field(default_factory=list)

    def names(self) -> List[str]:
        return [v.name for v in self.important_variables]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "function": self.function,
            "important_variables": [v.to_dict() for v in self.important_variables],
        }


class Report:
    """Ordered collection of function reports for a whole run."""

    def __init__(self, entries: Optional[List[FunctionReport]] = None) -> None:
        self.entries: List[FunctionReport] = list(entries or [])

    def append(self, entry: FunctionReport) -> None:
        self.entries.append(entry)

    def function(self, name: str) -> Optional[FunctionReport]:
        for entry in self.entries:
            if entry.function == name:
                return entry
        return None

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.entries]

    def to_json(self, indent: Optional[int] = 4) -> str:
        return json.dumps(self.to_list(), indent=indent)

    def __iter__(self) -> Iterator[FunctionReport]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __bool__(self) -> bool:
        return bool(self.entries)


def assemble_function_report(
    function_name: str,
    catalog: VariableCatalog,
    io_vars: IOVariableSet,
) -> Optional[FunctionReport]:
    """Project *catalog* onto *io_vars*; None when nothing qualifies."""
    variables = [
        ImportantVariable(rec.name, rec.line)
        for rec in catalog
        if rec.name in io_vars
    ]
    if not variables:
        return None
    return FunctionReport(function_name, variables)


def save_report(report: Report, path: Union[str, Path] = DEFAULT_REPORT_PATH,
                indent: Optional[int] = 4) -> Path:
    """Write *report* to *path* in one step.

    The JSON text goes to a temporary file next to *path* which then
    replaces *path*, so a failed write leaves any previous file untouched.
    """
    target = Path(path).expanduser()
    content = report.to_json(indent=indent) + "\n"
    tmp_name = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".seminal-", suffix=".json",
                                        dir=str(target.parent))
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        os.replace(tmp_name, target)
    except OSError as exc:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise ReportWriteError(target, exc.strerror or str(exc)) from exc
    _log.info("wrote %d function report(s) to %s", len(report), target)
    return target
