# seminal_input/sources.py
"""
Input-source classification.

Call sites whose callee name *contains* one of a few patterns are treated
as producers of external input.  The patterns are an ordered table of
``(pattern, kind)`` pairs and the first matching row wins, so a callee can
only ever be handled one way.  Matching is by substring on purpose:
wrappers such as ``myscanf_wrapper`` and relatives such as ``fgetc`` are
caught too, trading precision for recall.

==========  ==============  ===================================================
pattern     kind            variables marked as IO
==========  ==============  ===================================================
``scanf``   SCALAR_READER   the declared variable of every argument
``fopen``   FILE_OPEN       the destination of the first later store (same
                            block) that stores the call's result
``getc``    STREAM_READER   the declared variable of every argument
==========  ==============  ===================================================

A marked variable is added to the catalog if it is not there yet and its
name goes into the function's IO variable set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Tuple

from .ir import Function, Instruction, Opcode
from .resolver import resolve_variable
from .variables import IOVariableSet, VariableCatalog, VariableRecord

_log = logging.getLogger(__name__)


class InputSourceKind(Enum):
    SCALAR_READER = "scalar"
    FILE_OPEN = "file"
    STREAM_READER = "stream"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class InputSource:
    """One row of the dispatch table."""
    pattern: str
    kind: InputSourceKind

    def matches(self, callee: str) -> bool:
        return self.pattern in callee


DEFAULT_INPUT_SOURCES: Tuple[InputSource, ...] = (
    InputSource("scanf", InputSourceKind.SCALAR_READER),
    InputSource("fopen", InputSourceKind.FILE_OPEN),
    InputSource("getc", InputSourceKind.STREAM_READER),
)


def match_input_source(
    callee: Optional[str],
    sources: Sequence[InputSource] = DEFAULT_INPUT_SOURCES,
) -> Optional[InputSource]:
    """First row of *sources* whose pattern occurs in *callee*."""
    if not callee:
        return None
    for source in sources:
        if source.matches(callee):
            return source
    return None


# ---------------------------------------------------------------------------
#  Handlers
# ---------------------------------------------------------------------------

def _mark(rec: VariableRecord, catalog: VariableCatalog,
          io_vars: IOVariableSet) -> None:
    # Keep-first: a same-named variable already cataloged keeps its line.
    catalog.record_if_absent(rec)
    io_vars.add(rec.name)


def _mark_arguments(call: Instruction, function: Function,
                    catalog: VariableCatalog, io_vars: IOVariableSet) -> None:
    for arg in call.arguments:
        rec = resolve_variable(function.value(arg), function)
        if rec is not None:
            _mark(rec, catalog, io_vars)


def _mark_stored_result(call: Instruction, function: Function,
                        catalog: VariableCatalog, io_vars: IOVariableSet) -> None:
    block = function.block(call.block)
    if block is None:
        return
    start = block.instructions.index(call.index)
    for index in block.instructions[start:]:
        inst = function.instruction(index)
        if inst is None or inst.opcode is not Opcode.STORE:
            continue
        if inst.value_operand != call.index:
            continue
        rec = resolve_variable(function.value(inst.pointer_operand), function)
        if rec is not None:
            _mark(rec, catalog, io_vars)
            return


_Handler = Callable[[Instruction, Function, VariableCatalog, IOVariableSet], None]

_HANDLERS: Dict[InputSourceKind, _Handler] = {
    InputSourceKind.SCALAR_READER: _mark_arguments,
    InputSourceKind.FILE_OPEN: _mark_stored_result,
    InputSourceKind.STREAM_READER: _mark_arguments,
}


def classify_input_sources(
    function: Function,
    catalog: VariableCatalog,
    io_vars: IOVariableSet,
    sources: Sequence[InputSource] = DEFAULT_INPUT_SOURCES,
) -> None:
    """Mark the variables fed by input-producing calls in *function*."""
    for inst in function.instructions():
        if inst.opcode is not Opcode.CALL or inst.callee is None:
            continue
        source = match_input_source(inst.callee, sources)
        if source is None:
            continue
        _log.debug("%s: %s matches input pattern %r (%s)",
                   function.name, inst.callee, source.pattern, source.kind)
        _HANDLERS[source.kind](inst, function, catalog, io_vars)
