# seminal_input/ir.py
"""
Arena-allocated program representation for seminal-input.

A :class:`Function` owns every value it mentions in a flat arena: function
arguments, instruction results, globals, constants and metadata operands are
all :class:`Value` objects addressed by a stable integer ``index``.
Instructions refer to their operands by index, so identity comparisons and
visited-set bookkeeping are plain integer operations.

The model only carries what the influence analysis consumes:

- ordered basic blocks, each an ordered list of instruction indices
- per instruction, a discriminated :class:`Opcode` plus typed accessors
  (pointer/value operand of loads and stores, callee name and argument list
  of calls, condition and successors of branches)
- debug declarations binding a storage location to a source variable

Everything else in an LLVM module is dropped by the reader in
:mod:`seminal_input.ir_parser`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Iterator, List, Optional


NO_LINE: int = -1


# ===================================================================
#  Kinds
# ===================================================================

class ValueKind(Enum):
    """What a value in the arena stands for."""
    INSTRUCTION = auto()
    ARGUMENT = auto()
    GLOBAL = auto()
    CONSTANT = auto()
    METADATA = auto()


class Opcode(Enum):
    """Instruction kinds the analysis distinguishes."""
    ALLOCA = "alloca"
    LOAD = "load"
    STORE = "store"
    CALL = "call"
    BR = "br"
    DBG_DECLARE = "dbg_declare"
    OTHER = "other"


# ===================================================================
#  Values
# ===================================================================

@dataclass(eq=False)
class Value:
    """A node of the value graph.

    Values compare by identity; two constants spelled the same way in two
    different functions are different values.
    """
    index: int
    kind: ValueKind
    name: str

    @property
    def is_instruction(self) -> bool:
        return self.kind is ValueKind.INSTRUCTION

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<{self.kind.name.lower()} #{self.index} {self.name}>"


@dataclass(eq=False)
class Instruction(Value):
    """
    An instruction and, when it produces one, its result value.

    Attributes
    ----------
    opcode    : discriminated kind used by the analysis
    mnemonic  : the LLVM mnemonic as written (``icmp``, ``add``, ``call`` ...)
    operands  : operand value indices, in operand order.  For calls this is
                the argument list; the callee is kept separately.
    block     : label of the enclosing basic block
    has_result: False for instructions that produce no value (stores,
                branches, void calls)
    callee    : name of the directly called function, None for indirect calls
    callee_operand : index of the called value for indirect calls
    successors: target block labels of a terminator
    line      : source line of the attached ``!dbg`` location, or -1
    variable  : for debug declarations, the declared source variable name
    dbg       : metadata id of the ``!dbg`` attachment (resolved into
                ``line`` once the whole module has been read)
    var_ref   : metadata id of the declared ``DILocalVariable``
    """
    opcode: Opcode = Opcode.OTHER
    mnemonic: str = ""
    operands: List[int] = field(default_factory=list)
    block: str = ""
    has_result: bool = False
    callee: Optional[str] = None
    callee_operand: Optional[int] = None
    successors: List[str] = field(default_factory=list)
    line: int = NO_LINE
    variable: Optional[str] = None
    dbg: Optional[str] = None
    var_ref: Optional[str] = None

    # ---- load / store --------------------------------------------------

    @property
    def pointer_operand(self) -> Optional[int]:
        """Location read by a load or written by a store."""
        if self.opcode is Opcode.LOAD and self.operands:
            return self.operands[0]
        if self.opcode is Opcode.STORE and len(self.operands) >= 2:
            return self.operands[1]
        return None

    @property
    def value_operand(self) -> Optional[int]:
        """Value written by a store."""
        if self.opcode is Opcode.STORE and self.operands:
            return self.operands[0]
        return None

    # ---- call ------------------------------------------------------------

    @property
    def arguments(self) -> List[int]:
        if self.opcode is Opcode.CALL:
            return list(self.operands)
        return []

    @property
    def is_void(self) -> bool:
        return not self.has_result

    # ---- branch ----------------------------------------------------------

    @property
    def is_conditional(self) -> bool:
        return self.opcode is Opcode.BR and len(self.operands) == 1

    @property
    def condition(self) -> Optional[int]:
        if self.is_conditional:
            return self.operands[0]
        return None

    # ---- debug declaration -----------------------------------------------

    @property
    def address(self) -> Optional[int]:
        """Storage location bound by a debug declaration."""
        if self.opcode is Opcode.DBG_DECLARE and self.operands:
            return self.operands[0]
        return None

    def __str__(self) -> str:
        ops = ", ".join(f"#{i}" for i in self.operands)
        head = f"{self.name} = " if self.has_result else ""
        if self.callee is not None:
            return f"{head}{self.mnemonic} @{self.callee}({ops})"
        return f"{head}{self.mnemonic} {ops}".rstrip()


# ===================================================================
#  Blocks, functions, modules
# ===================================================================

@dataclass
class BasicBlock:
    """Ordered straight-line instruction sequence."""
    label: str
    instructions: List[int] = field(default_factory=list)
    successors: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.instructions)


class Function:
    """A function body: ordered blocks over a value arena."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.arguments: List[int] = []
        self.blocks: List[BasicBlock] = []
        self._values: List[Value] = []
        self._block_map: Dict[str, BasicBlock] = {}
        self._globals: Dict[str, int] = {}
        self._constants: Dict[str, int] = {}

    # ---- arena -----------------------------------------------------------

    def _push(self, value: Value) -> Value:
        self._values.append(value)
        return value

    def new_argument(self, name: str) -> Value:
        value = self._push(Value(len(self._values), ValueKind.ARGUMENT, name))
        self.arguments.append(value.index)
        return value

    def new_instruction(self, name: str, opcode: Opcode, mnemonic: str,
                        **attrs: Any) -> Instruction:
        inst = Instruction(len(self._values), ValueKind.INSTRUCTION, name,
                           opcode=opcode, mnemonic=mnemonic, **attrs)
        self._push(inst)
        return inst

    def global_ref(self, name: str) -> Value:
        """Return the (interned) value standing for global ``@name``."""
        index = self._globals.get(name)
        if index is None:
            index = self._push(
                Value(len(self._values), ValueKind.GLOBAL, name)).index
            self._globals[name] = index
        return self._values[index]

    def constant(self, text: str,
                 kind: ValueKind = ValueKind.CONSTANT) -> Value:
        """Return the (interned) constant or metadata operand ``text``."""
        key = f"{kind.name}:{text}"
        index = self._constants.get(key)
        if index is None:
            index = self._push(Value(len(self._values), kind, text)).index
            self._constants[key] = index
        return self._values[index]

    def value(self, index: Optional[int]) -> Optional[Value]:
        """Look up a value by arena index; None for unknown indices."""
        if index is None or not 0 <= index < len(self._values):
            return None
        return self._values[index]

    def instruction(self, index: Optional[int]) -> Optional[Instruction]:
        value = self.value(index)
        if isinstance(value, Instruction):
            return value
        return None

    @property
    def values(self) -> List[Value]:
        return list(self._values)

    # ---- blocks ----------------------------------------------------------

    def add_block(self, label: str) -> BasicBlock:
        block = BasicBlock(label)
        self.blocks.append(block)
        self._block_map[label] = block
        return block

    def append(self, block: BasicBlock, inst: Instruction) -> None:
        inst.block = block.label
        block.instructions.append(inst.index)

    def block(self, label: str) -> Optional[BasicBlock]:
        return self._block_map.get(label)

    @property
    def entry(self) -> Optional[BasicBlock]:
        return self.blocks[0] if self.blocks else None

    def successors(self, label: str) -> List[BasicBlock]:
        block = self._block_map.get(label)
        if block is None:
            return []
        return [self._block_map[s] for s in block.successors
                if s in self._block_map]

    def predecessors(self, label: str) -> List[BasicBlock]:
        return [b for b in self.blocks if label in b.successors]

    def block_instructions(self, block: BasicBlock) -> Iterator[Instruction]:
        for index in block.instructions:
            yield self._values[index]  # type: ignore[misc]

    def instructions(self) -> Iterator[Instruction]:
        """All instructions, in block order then instruction order."""
        for block in self.blocks:
            yield from self.block_instructions(block)

    def __repr__(self) -> str:
        return (f"<Function {self.name}: {len(self.blocks)} blocks, "
                f"{len(self._values)} values>")


@dataclass
class MetadataNode:
    """A numbered metadata definition such as ``!12 = !DILocalVariable(...)``."""
    ident: str
    kind: str
    fields: Dict[str, Any] = field(default_factory=dict)

    def get_int(self, key: str, default: int = NO_LINE) -> int:
        value = self.fields.get(key)
        return value if isinstance(value, int) else default


@dataclass
class Module:
    """A translation unit: ordered function definitions plus metadata."""
    source: str = "<string>"
    functions: List[Function] = field(default_factory=list)
    metadata: Dict[str, MetadataNode] = field(default_factory=dict)

    def function(self, name: str) -> Optional[Function]:
        for fn in self.functions:
            if fn.name == name:
                return fn
        return None

    def __iter__(self) -> Iterator[Function]:
        return iter(self.functions)

    def __len__(self) -> int:
        return len(self.functions)
