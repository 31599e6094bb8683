# seminal_input/resolver.py
"""
Debug-variable resolution.

Given a storage location (typically the result of an ``alloca``) and the
function containing it, find the debug declaration that binds the location
to a source variable.  The search is a plain linear scan over the
function's instructions in block order; there is no index, so repeated
look-ups cost a scan each and always return the same answer for the same
function state.
"""

from __future__ import annotations

import logging
from typing import Optional

from .ir import Function, Instruction, Opcode, Value
from .variables import VariableRecord

_log = logging.getLogger(__name__)


def find_declaration(storage: Optional[Value],
                     function: Optional[Function]) -> Optional[Instruction]:
    """Return the first debug declaration whose address is *storage*.

    Matching is by value identity (arena index), never by name.
    """
    if storage is None:
        _log.error("null storage value passed to find_declaration")
        return None
    if function is None:
        _log.error("null function passed to find_declaration")
        return None
    if function.value(storage.index) is not storage:
        _log.debug("%r does not belong to %s", storage, function.name)
        return None

    for inst in function.instructions():
        if inst.opcode is Opcode.DBG_DECLARE and inst.address == storage.index:
            return inst
    return None


def resolve_variable(storage: Optional[Value],
                     function: Optional[Function]) -> Optional[VariableRecord]:
    """Resolve *storage* to the ``(name, line)`` of its declared variable.

    Returns None when nothing declares the location or the first matching
    declaration names no variable.
    """
    decl = find_declaration(storage, function)
    if decl is None or not decl.variable:
        return None
    return VariableRecord(decl.variable, decl.line)
