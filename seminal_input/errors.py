# seminal_input/errors.py
"""
Exception hierarchy for seminal-input.

Only the outer surfaces raise: reading IR, writing the report, and
interpreting configuration.  Inside the analysis core, missing debug
metadata is skipped silently and invalid internal arguments are reported
on the logging channel instead of raised, so one malformed function can
never abort the rest of a run.

::

    SeminalInputError (base)
    ├── IRParseError      - malformed textual IR
    ├── ReportWriteError  - the report file could not be written
    └── ConfigError       - bad input-source pattern or option
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class SeminalInputError(Exception):
    """Base class of every error raised by this package."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class IRParseError(SeminalInputError):
    """A line of IR could not be tokenized or interpreted."""

    def __init__(
        self,
        message: str,
        line: int = 0,
        text: Optional[str] = None,
        source: str = "<string>",
    ) -> None:
        self.line = line
        self.text = text
        self.source = source
        location = f"{source}:{line}" if line else source
        super().__init__(f"{location}: {message}")


class ReportWriteError(SeminalInputError):
    """The report could not be persisted."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"cannot write report to {self.path}: {reason}")


class ConfigError(SeminalInputError):
    """Invalid detector configuration."""
