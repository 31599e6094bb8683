# seminal_input/seeding.py
"""
Seed selectors: where the influence traversal starts.

Loop-condition seeding
    Input-driven termination conditions are the interesting ones, so for
    each loop the conditional branches of the header block are inspected
    and the operands of their condition (the values compared or combined,
    not the condition itself) are walked.

Allocation/store seeding
    One pass over the whole function.  Allocations with a debug declaration
    are cataloged directly; every store walks its value and its destination.
    A single visited set is shared across the pass.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Set

from .ir import Function, Instruction, Opcode
from .loops import NaturalLoop
from .resolver import resolve_variable
from .traversal import trace_def_use
from .variables import VariableCatalog

_log = logging.getLogger(__name__)


def seed_from_loops(
    loops: Iterable[NaturalLoop],
    visited: Set[int],
    catalog: VariableCatalog,
    function: Function,
) -> None:
    """Walk the operands of every conditional branch in each loop header."""
    for loop in loops:
        header = loop.header_block(function)
        if header is None:
            _log.debug("%s: loop header %s not found", function.name, loop.header)
            continue
        for inst in function.block_instructions(header):
            if not inst.is_conditional:
                continue
            cond = function.instruction(inst.condition)
            if cond is None:
                continue
            _log.debug("%s: seeding from loop condition %s in %s",
                       function.name, cond.name, header.label)
            for operand in cond.operands:
                trace_def_use(function.value(operand), visited, catalog, function)


def handle_allocation(inst: Optional[Instruction], function: Optional[Function],
                      catalog: Optional[VariableCatalog]) -> None:
    """Catalog the declared variable of an ``alloca``, if any."""
    if inst is None or function is None or catalog is None:
        _log.error("null argument passed to handle_allocation")
        return
    if inst.opcode is not Opcode.ALLOCA:
        return
    rec = resolve_variable(inst, function)
    if rec is not None:
        catalog.record(rec)


def handle_store(inst: Optional[Instruction], visited: Optional[Set[int]],
                 catalog: Optional[VariableCatalog],
                 function: Optional[Function]) -> None:
    """Walk the stored value and the stored-to location of a ``store``."""
    if inst is None or visited is None or catalog is None or function is None:
        _log.error("null argument passed to handle_store")
        return
    if inst.opcode is not Opcode.STORE:
        return
    trace_def_use(function.value(inst.value_operand), visited, catalog, function)
    trace_def_use(function.value(inst.pointer_operand), visited, catalog, function)


def seed_from_allocations_and_stores(
    function: Function,
    catalog: VariableCatalog,
    visited: Set[int],
) -> None:
    """Single in-order pass over every instruction of *function*."""
    for inst in function.instructions():
        handle_allocation(inst, function, catalog)
        handle_store(inst, visited, catalog, function)
