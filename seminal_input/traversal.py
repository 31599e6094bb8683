# seminal_input/traversal.py
"""
Influence traversal: the backward def-use walk at the heart of the detector.

Starting from a seed value, the walk follows each instruction back to the
values it was computed from and records every named variable it passes
through in the function's :class:`~seminal_input.variables.VariableCatalog`.

Per instruction kind:

    load   -> resolve the location read; record its variable; walk the
              location itself (a load of a load of a pointer is followed)
    store  -> walk the stored value, then the destination
    call   -> walk the call's own result when it has one, then every
              argument in order
    other  -> walk every operand in order

Arguments, globals, constants and metadata stop the walk.

The visited set holds arena indices.  A value that is already in it is
never entered again, which bounds the walk to one visit per value even on
cyclic store/load chains.  Callers may share one visited set across several
seeds of the same function.

The walk keeps an explicit stack but enters values in exactly the order of
the recursive formulation (pre-order, operands left to right), so catalog
overwrites happen in the same order too.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Set

from .ir import Function, Instruction, Opcode, Value
from .resolver import resolve_variable
from .variables import VariableCatalog

_log = logging.getLogger(__name__)


def _predecessor_values(inst: Instruction, catalog: VariableCatalog,
                        function: Function) -> List[Optional[int]]:
    """Handle *inst* on entry and return the values to walk next, in order."""
    if inst.opcode is Opcode.LOAD:
        location = inst.pointer_operand
        rec = resolve_variable(function.value(location), function)
        if rec is not None:
            catalog.record(rec)
        return [location]

    if inst.opcode is Opcode.STORE:
        return [inst.value_operand, inst.pointer_operand]

    if inst.opcode is Opcode.CALL:
        head: List[Optional[int]] = [] if inst.is_void else [inst.index]
        return head + inst.arguments

    return list(inst.operands)


def trace_def_use(
    value: Optional[Value],
    visited: Optional[Set[int]],
    catalog: Optional[VariableCatalog],
    function: Optional[Function],
) -> None:
    """Walk the def-use chain behind *value*, filling *catalog*.

    A None argument is reported and the call returns without touching
    *visited* or *catalog*.
    """
    if value is None:
        _log.error("null value passed to trace_def_use")
        return
    if visited is None:
        _log.error("null visited set passed to trace_def_use")
        return
    if catalog is None:
        _log.error("null variable catalog passed to trace_def_use")
        return
    if function is None:
        _log.error("null function passed to trace_def_use")
        return

    stack: List[int] = [value.index]
    while stack:
        index = stack.pop()
        if index in visited:
            continue
        visited.add(index)

        inst = function.instruction(index)
        if inst is None:
            continue

        following = _predecessor_values(inst, catalog, function)
        stack.extend(i for i in reversed(following) if i is not None)
