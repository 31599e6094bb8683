"""
seminal_input — input-influenced variable detection over LLVM IR
================================================================

Finds, per function, the source variables whose values come from external
input (``scanf``-, ``fopen``- and ``getc``-like calls) by walking the
def-use chains of a compiled program's IR, and reports their names and
declaration lines.

Core modules
------------
ir
    Arena-allocated IR: functions, basic blocks, instructions, values.
ir_parser
    Parsimonious-based reader for textual LLVM IR (``.ll``).
loops
    Dominator tree and natural loop detection.
resolver
    Debug-declaration look-up (storage location → source variable).
variables
    VariableRecord, VariableCatalog, IOVariableSet.
traversal
    The cycle-safe backward def-use walk.
seeding
    Loop-condition and allocation/store seeding.
sources
    Input-source classification (ordered pattern table).
report
    Per-function report assembly and the one-shot JSON writer.
detector
    The driver: ``analyze_function`` / ``analyze_module``.

Quick start
-----------
>>> from seminal_input import SeminalInputDetector, load_module, save_report
>>> report = SeminalInputDetector().analyze_module(load_module("prog.ll"))
>>> save_report(report, "seminal-values.json")            # doctest: +SKIP
"""

from __future__ import annotations

import importlib
import logging
import sys
from typing import TYPE_CHECKING, List

__version__ = "1.0.0"
__all__: List[str] = []

_log = logging.getLogger(__name__)
_log.addHandler(logging.NullHandler())

# ---------------------------------------------------------------------------
# Re-exported names, per submodule
# ---------------------------------------------------------------------------

_CORE_MODULES = {
    "errors": [
        "SeminalInputError",
        "IRParseError",
        "ReportWriteError",
        "ConfigError",
    ],
    "ir": [
        "Function",
        "BasicBlock",
        "Instruction",
        "Module",
        "Opcode",
        "Value",
        "ValueKind",
    ],
    "ir_parser": [
        "parse_module",
        "load_module",
    ],
    "loops": [
        "DominatorTree",
        "NaturalLoop",
        "NaturalLoopDetector",
        "find_loops",
        "top_level_loops",
    ],
    "resolver": [
        "find_declaration",
        "resolve_variable",
    ],
    "variables": [
        "VariableRecord",
        "VariableCatalog",
    ],
    "traversal": [
        "trace_def_use",
    ],
    "seeding": [
        "seed_from_loops",
        "seed_from_allocations_and_stores",
    ],
    "sources": [
        "InputSource",
        "InputSourceKind",
        "DEFAULT_INPUT_SOURCES",
        "classify_input_sources",
        "match_input_source",
    ],
    "report": [
        "ImportantVariable",
        "FunctionReport",
        "Report",
        "assemble_function_report",
        "save_report",
    ],
    "config": [
        "DetectorConfig",
        "parse_source_spec",
    ],
    "detector": [
        "SeminalInputDetector",
        "analyze_file",
        "analyze_files",
    ],
}


def _import_names(module_rel_name: str, names: List[str]) -> None:
    """Import *names* from a submodule and bind them in the package namespace."""
    fq_name = f"{__name__}.{module_rel_name}"
    try:
        mod = importlib.import_module(fq_name)
    except ImportError as exc:
        raise ImportError(
            f"seminal_input: required submodule '{module_rel_name}' "
            f"failed to import: {exc}"
        ) from exc

    current_module = sys.modules[__name__]
    for name in names:
        obj = getattr(mod, name, None)
        if obj is None:
            raise AttributeError(
                f"seminal_input.{module_rel_name} does not export '{name}'"
            )
        setattr(current_module, name, obj)
        __all__.append(name)


for _mod, _names in _CORE_MODULES.items():
    _import_names(_mod, _names)

del _mod, _names


def list_submodules() -> List[str]:
    return sorted(_CORE_MODULES)


__all__ += ["list_submodules", "__version__"]

if TYPE_CHECKING:
    from .errors import (
        SeminalInputError as SeminalInputError,
        IRParseError as IRParseError,
        ReportWriteError as ReportWriteError,
        ConfigError as ConfigError,
    )
    from .ir import (
        Function as Function,
        BasicBlock as BasicBlock,
        Instruction as Instruction,
        Module as Module,
        Opcode as Opcode,
        Value as Value,
        ValueKind as ValueKind,
    )
    from .ir_parser import (
        parse_module as parse_module,
        load_module as load_module,
    )
    from .loops import (
        DominatorTree as DominatorTree,
        NaturalLoop as NaturalLoop,
        NaturalLoopDetector as NaturalLoopDetector,
        find_loops as find_loops,
        top_level_loops as top_level_loops,
    )
    from .resolver import (
        find_declaration as find_declaration,
        resolve_variable as resolve_variable,
    )
    from .variables import (
        VariableRecord as VariableRecord,
        VariableCatalog as VariableCatalog,
    )
    from .traversal import trace_def_use as trace_def_use
    from .seeding import (
        seed_from_loops as seed_from_loops,
        seed_from_allocations_and_stores as seed_from_allocations_and_stores,
    )
    from .sources import (
        InputSource as InputSource,
        InputSourceKind as InputSourceKind,
        DEFAULT_INPUT_SOURCES as DEFAULT_INPUT_SOURCES,
        classify_input_sources as classify_input_sources,
        match_input_source as match_input_source,
    )
    from .report import (
        ImportantVariable as ImportantVariable,
        FunctionReport as FunctionReport,
        Report as Report,
        assemble_function_report as assemble_function_report,
        save_report as save_report,
    )
    from .config import (
        DetectorConfig as DetectorConfig,
        parse_source_spec as parse_source_spec,
    )
    from .detector import (
        SeminalInputDetector as SeminalInputDetector,
        analyze_file as analyze_file,
        analyze_files as analyze_files,
    )
