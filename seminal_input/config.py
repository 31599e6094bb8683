# seminal_input/config.py
"""Detector configuration."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import FrozenSet, Iterable, Optional, Tuple

from .errors import ConfigError
from .report import DEFAULT_REPORT_PATH
from .sources import DEFAULT_INPUT_SOURCES, InputSource, InputSourceKind


@dataclass(frozen=True)
class DetectorConfig:
    """
    Options for :class:`~seminal_input.detector.SeminalInputDetector`.

    output_path          : where the report is saved
    sources              : ordered input-source table, first match wins
    include_nested_loops : also seed from headers of nested loops
    functions            : analyze only these functions (None = all)
    indent               : JSON indentation of the saved report
    """
    output_path: str = DEFAULT_REPORT_PATH
    sources: Tuple[InputSource, ...] = DEFAULT_INPUT_SOURCES
    include_nested_loops: bool = False
    functions: Optional[FrozenSet[str]] = None
    indent: Optional[int] = 4

    def with_sources(self, extra: Iterable[InputSource]) -> "DetectorConfig":
        """Copy with *extra* rows appended after the current table."""
        return replace(self, sources=tuple(self.sources) + tuple(extra))

    def wants(self, function_name: str) -> bool:
        return self.functions is None or function_name in self.functions


_KIND_NAMES = {k.name.lower(): k for k in InputSourceKind}
_KIND_NAMES.update({k.value: k for k in InputSourceKind})


def parse_source_spec(spec: str) -> InputSource:
    """Parse ``PATTERN=KIND`` (e.g. ``"read_line=stream"``)."""
    pattern, sep, kind_name = spec.partition("=")
    pattern = pattern.strip()
    kind_name = kind_name.strip().lower()
    if not sep or not pattern:
        raise ConfigError(f"bad input source {spec!r}, expected PATTERN=KIND")
    kind = _KIND_NAMES.get(kind_name)
    if kind is None:
        choices = ", ".join(sorted(_KIND_NAMES))
        raise ConfigError(f"unknown input source kind {kind_name!r} "
                          f"(choose from {choices})")
    return InputSource(pattern, kind)
