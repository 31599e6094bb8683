# seminal_input/ir_parser.py
"""
Reader for textual LLVM IR (``clang -g -S -emit-llvm`` output).

Only the subset the influence analysis needs is understood:

- ``define`` bodies: labels, instructions, operand references
- ``llvm.dbg.declare`` intrinsic calls and ``#dbg_declare`` debug records
- numbered metadata, in particular ``DILocalVariable`` and ``DILocation``

Each line is tokenized with a small Parsimonious PEG grammar into a flat
token list with balanced groups (``()``, ``[]``, ``{}``, ``<>``).  The
tokens are then interpreted per mnemonic.  An instruction whose groups stay
open at the end of a line (clang prints ``switch`` case lists that way) is
joined with the following lines before tokenizing.  Anything else in a module
(type definitions, globals, attribute groups, declarations) is skipped.

Operand references may point forward (phi nodes, loop back-edges), so a
function body is read in two passes: first every result name gets an
arena slot, then operands are resolved.

Usage::

    from seminal_input.ir_parser import load_module

    module = load_module("prog.ll")
    for fn in module:
        print(fn.name, len(fn.blocks))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple, Union

from parsimonious.exceptions import ParseError, VisitationError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from .errors import IRParseError
from .ir import (
    Function,
    Instruction,
    MetadataNode,
    Module,
    Opcode,
    ValueKind,
)

_log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  PART 1: LINE GRAMMAR (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

IR_LINE_GRAMMAR = Grammar(r'''
    line        = _ statement? _ comment?
    statement   = label / items

    label       = label_name ":"
    label_name  = ~r'[-a-zA-Z$._0-9]+' / ~r'"[^"]*"'

    items       = item (_ item)*
    item        = group / string / local / global / metadata / attribute
                / field / number / word / comma / equals / other

    group       = paren / bracket / brace / angle
    paren       = "(" _ items? _ ")"
    bracket     = "[" _ items? _ "]"
    brace       = "{" _ items? _ "}"
    angle       = "<" _ items? _ ">"

    string      = ~r'c?"[^"]*"'
    local       = ~r'%(?:[-a-zA-Z$._0-9]+|"[^"]*")'
    global      = ~r'@(?:[-a-zA-Z$._0-9]+|"[^"]*")'
    metadata    = ~r'![-a-zA-Z$._0-9\\]*'
    attribute   = ~r'#[-a-zA-Z$._0-9]+'
    field       = ~r'[a-zA-Z_][a-zA-Z0-9_]*:(?!:)'
    number      = ~r'[-+]?(?:0x[0-9a-fA-F]+|[0-9]+(?:\.[0-9]+)?(?:[eE][-+]?[0-9]+)?)(?![-a-zA-Z$._0-9])'
    word        = ~r'[-a-zA-Z$._0-9*]+'
    comma       = ","
    equals      = "="
    other       = ~r'[^\s,=()\[\]{}<>;"%@!#]'

    comment     = ~r';.*'
    _           = ~r'[ \t]*'
''')


class Tok(NamedTuple):
    """One token of an IR line; groups carry their nested tokens."""
    kind: str
    text: str
    items: Tuple["Tok", ...] = ()


def _flatten(children: list) -> Iterator[Tok]:
    for child in children:
        if isinstance(child, Tok):
            yield child
        elif isinstance(child, list):
            yield from _flatten(child)


class IRLineVisitor(NodeVisitor):
    """Turns a parse tree of :data:`IR_LINE_GRAMMAR` into a token list."""

    def generic_visit(self, node: Node, visited_children: list) -> list:
        return list(_flatten(visited_children))

    def visit_line(self, node: Node, visited_children: list) -> List[Tok]:
        return list(_flatten(visited_children))

    def visit_label(self, node: Node, visited_children: list) -> Tok:
        return Tok("label", node.text[:-1].strip('"'))

    def visit__(self, node: Node, visited_children: list) -> list:
        return []

    def visit_comment(self, node: Node, visited_children: list) -> list:
        return []

    def visit_field(self, node: Node, visited_children: list) -> Tok:
        return Tok("field", node.text[:-1])

    def _group(self, kind: str, node: Node, visited_children: list) -> Tok:
        return Tok(kind, node.text, tuple(_flatten(visited_children)))

    def visit_paren(self, node, visited_children):
        return self._group("paren", node, visited_children)

    def visit_bracket(self, node, visited_children):
        return self._group("bracket", node, visited_children)

    def visit_brace(self, node, visited_children):
        return self._group("brace", node, visited_children)

    def visit_angle(self, node, visited_children):
        return self._group("angle", node, visited_children)

    def _leaf(self, kind: str, node: Node) -> Tok:
        return Tok(kind, node.text)

    def visit_string(self, node, _):
        return self._leaf("string", node)

    def visit_local(self, node, _):
        return self._leaf("local", node)

    def visit_global(self, node, _):
        return self._leaf("global", node)

    def visit_metadata(self, node, _):
        return self._leaf("metadata", node)

    def visit_attribute(self, node, _):
        return self._leaf("attribute", node)

    def visit_number(self, node, _):
        return self._leaf("number", node)

    def visit_word(self, node, _):
        return self._leaf("word", node)

    def visit_comma(self, node, _):
        return self._leaf("comma", node)

    def visit_equals(self, node, _):
        return self._leaf("equals", node)

    def visit_other(self, node, _):
        return self._leaf("other", node)


_VISITOR = IRLineVisitor()


def tokenize_line(text: str, lineno: int = 0,
                  source: str = "<string>") -> List[Tok]:
    """Tokenize one line of IR; raises :class:`IRParseError` on bad input."""
    try:
        tree = IR_LINE_GRAMMAR.parse(text)
        return _VISITOR.visit(tree)
    except (ParseError, VisitationError) as exc:
        raise IRParseError(str(exc).splitlines()[0], line=lineno,
                           text=text, source=source) from exc


# ═══════════════════════════════════════════════════════════════════
#  PART 2: TOKEN HELPERS
# ═══════════════════════════════════════════════════════════════════

_CONSTANT_WORDS = frozenset({
    "null", "true", "false", "undef", "poison", "zeroinitializer", "none",
})
_ORDERING_WORDS = frozenset({
    "unordered", "monotonic", "acquire", "release", "acq_rel", "seq_cst",
})
_NON_OPERAND_WORDS = frozenset({"align", "syncscope", "addrspace"})
_CALL_PREFIXES = frozenset({"tail", "musttail", "notail"})
_CALL_MNEMONICS = frozenset({"call", "invoke", "callbr"})
_TERMINATORS = frozenset({
    "br", "switch", "indirectbr", "invoke", "callbr", "ret", "unreachable",
    "resume", "cleanupret", "catchret", "catchswitch",
})
_SKIPPED_RECORDS = frozenset({
    "#dbg_value", "#dbg_assign", "#dbg_label",
})

DBG_DECLARE_INTRINSIC = "llvm.dbg.declare"


def split_commas(toks: Union[List[Tok], Tuple[Tok, ...]]) -> List[List[Tok]]:
    """Split a token sequence on top-level commas."""
    segments: List[List[Tok]] = [[]]
    for tok in toks:
        if tok.kind == "comma":
            segments.append([])
        else:
            segments[-1].append(tok)
    if segments == [[]]:
        return []
    return segments


def _is_attachment(seg: List[Tok]) -> bool:
    return (len(seg) >= 2 and seg[0].kind == "metadata"
            and seg[0].text[1:2].isalpha())


def _operand_segments(segments: List[List[Tok]]) -> List[List[Tok]]:
    """Drop ``align N`` style modifiers and metadata attachments."""
    out = []
    for seg in segments:
        if not seg or _is_attachment(seg):
            continue
        if seg[0].kind == "word" and seg[0].text in _NON_OPERAND_WORDS:
            continue
        out.append(seg)
    return out


def _attachments(segments: List[List[Tok]]) -> Dict[str, str]:
    return {seg[0].text: seg[1].text for seg in segments if _is_attachment(seg)}


def segment_operand(seg: List[Tok]) -> Optional[Tok]:
    """Return the value token of a ``<type> [attrs] <value>`` segment.

    Returns None when the segment names no value (a bare type, ``void``).
    """
    for i, tok in enumerate(seg):
        if tok.kind == "word" and tok.text == "to":
            seg = seg[:i]
            break
    while seg and seg[-1].kind == "word" and seg[-1].text in _ORDERING_WORDS:
        seg = seg[:-1]
    if not seg:
        return None
    last = seg[-1]
    if last.kind in ("local", "global", "number", "string", "metadata"):
        return last
    if last.kind == "word" and last.text in _CONSTANT_WORDS:
        return last
    if last.kind == "paren" and len(seg) >= 2:
        prev = seg[-2]
        if prev.kind == "metadata":
            return Tok("metadata", prev.text + last.text, last.items)
        if prev.kind == "word":
            return Tok("constexpr", prev.text + last.text, last.items)
    return None


def _operand_or_text(seg: List[Tok]) -> Tok:
    tok = segment_operand(seg)
    if tok is None:
        return Tok("constexpr", " ".join(t.text for t in seg))
    return tok


def _label_targets(toks: Union[List[Tok], Tuple[Tok, ...]]) -> List[str]:
    """Collect ``label %x`` targets, looking inside groups."""
    targets: List[str] = []
    prev: Optional[Tok] = None
    for tok in toks:
        if (tok.kind == "local" and prev is not None
                and prev.kind == "word" and prev.text == "label"):
            targets.append(_local_name(tok))
        elif tok.items:
            targets.extend(_label_targets(tok.items))
        prev = tok
    return targets


def _local_name(tok: Tok) -> str:
    return tok.text[1:].strip('"')


def _parse_fields(items: Tuple[Tok, ...]) -> Dict[str, object]:
    fields: Dict[str, object] = {}
    for i, tok in enumerate(items):
        if tok.kind != "field" or i + 1 >= len(items):
            continue
        value = items[i + 1]
        if value.kind == "number":
            try:
                fields[tok.text] = int(value.text, 0)
            except ValueError:
                fields[tok.text] = value.text
        elif value.kind == "string":
            fields[tok.text] = value.text.strip('"')
        elif value.kind != "comma":
            fields[tok.text] = value.text
    return fields


# ═══════════════════════════════════════════════════════════════════
#  PART 3: FUNCTION BODIES
# ═══════════════════════════════════════════════════════════════════

@dataclass
class _RawInstruction:
    result: Optional[str]
    toks: List[Tok]
    lineno: int


@dataclass
class _RawBlock:
    label: str
    instructions: List[_RawInstruction] = field(default_factory=list)


class _FunctionReader:
    """Collects one ``define`` body, then builds the :class:`Function`."""

    def __init__(self, name: str, params: List[str], reader: "_ModuleReader"):
        self.name = name
        self.params = params
        self.reader = reader
        self.blocks: List[_RawBlock] = []
        self._names: Dict[str, int] = {}

    def add_line(self, toks: List[Tok], lineno: int) -> None:
        if len(toks) == 1 and toks[0].kind == "label":
            self.blocks.append(_RawBlock(toks[0].text))
            return
        if not self.blocks:
            # Unnamed entry block takes the next implicit number.
            implicit = sum(1 for p in self.params if p.isdigit())
            self.blocks.append(_RawBlock(str(implicit)))
        result = None
        if len(toks) >= 2 and toks[0].kind == "local" and toks[1].kind == "equals":
            result = _local_name(toks[0])
            toks = toks[2:]
        if not toks:
            raise IRParseError("missing instruction after result name",
                               line=lineno, source=self.reader.source)
        self.blocks[-1].instructions.append(_RawInstruction(result, toks, lineno))

    # ---- pass 2 ------------------------------------------------------

    def build(self) -> Function:
        fn = Function(self.name)
        self._names = {}
        for param in self.params:
            self._names[param] = fn.new_argument(param).index

        pending: List[Tuple[Instruction, _Decoded]] = []
        for raw_block in self.blocks:
            block = fn.add_block(raw_block.label)
            for raw in raw_block.instructions:
                decoded = _decode(raw, self.reader.source)
                if decoded is None:
                    continue
                name = raw.result if raw.result is not None else f"<{decoded.mnemonic}>"
                inst = fn.new_instruction(
                    name, decoded.opcode, decoded.mnemonic,
                    has_result=raw.result is not None,
                    callee=decoded.callee,
                    successors=list(decoded.successors),
                    dbg=decoded.dbg,
                    var_ref=decoded.var_ref,
                )
                fn.append(block, inst)
                if raw.result is not None:
                    self._names[raw.result] = inst.index
                pending.append((inst, decoded))
            if block.instructions:
                last = fn.instruction(block.instructions[-1])
                if last is not None:
                    block.successors = list(last.successors)

        for inst, decoded in pending:
            inst.operands = [self._resolve(fn, tok) for tok in decoded.operands]
            if decoded.callee_tok is not None:
                inst.callee_operand = self._resolve(fn, decoded.callee_tok)
        return fn

    def _resolve(self, fn: Function, tok: Tok) -> int:
        if tok.kind == "local":
            name = _local_name(tok)
            index = self._names.get(name)
            if index is not None:
                return index
            _log.debug("%s: unresolved local %s treated as constant",
                       self.name, tok.text)
            return fn.constant(tok.text).index
        if tok.kind == "global":
            return fn.global_ref(_local_name(tok)).index
        if tok.kind == "metadata":
            return fn.constant(tok.text, ValueKind.METADATA).index
        return fn.constant(tok.text).index


@dataclass
class _Decoded:
    opcode: Opcode
    mnemonic: str
    operands: List[Tok] = field(default_factory=list)
    callee: Optional[str] = None
    callee_tok: Optional[Tok] = None
    successors: List[str] = field(default_factory=list)
    dbg: Optional[str] = None
    var_ref: Optional[str] = None


def _decode(raw: _RawInstruction, source: str) -> Optional[_Decoded]:
    """Interpret the tokens of one instruction line."""
    toks = raw.toks
    head = toks[0]

    if head.kind == "attribute":
        if head.text == "#dbg_declare" and len(toks) >= 2 and toks[1].kind == "paren":
            return _decode_dbg_record(toks[1])
        if head.text in _SKIPPED_RECORDS:
            return None
        raise IRParseError(f"unexpected record {head.text}", line=raw.lineno,
                           source=source)

    while toks and toks[0].kind == "word" and toks[0].text in _CALL_PREFIXES:
        toks = toks[1:]
    if not toks or toks[0].kind != "word":
        raise IRParseError("expected an instruction mnemonic",
                           line=raw.lineno, source=source)

    mnemonic = toks[0].text
    rest = toks[1:]
    segments = split_commas(rest)
    attachments = _attachments(segments)
    operands = _operand_segments(segments)
    dbg = attachments.get("!dbg")
    successors = _label_targets(rest) if mnemonic in _TERMINATORS else []

    if mnemonic == "alloca":
        return _Decoded(Opcode.ALLOCA, mnemonic, dbg=dbg)

    if mnemonic == "load":
        ops = [segment_operand(operands[-1])] if operands else []
        return _Decoded(Opcode.LOAD, mnemonic, [t for t in ops if t], dbg=dbg)

    if mnemonic == "store":
        ops = [_operand_or_text(seg) for seg in operands[:2]]
        return _Decoded(Opcode.STORE, mnemonic, ops, dbg=dbg)

    if mnemonic in _CALL_MNEMONICS:
        return _decode_call(mnemonic, segments[0] if segments else [],
                            successors, dbg)

    if mnemonic == "br":
        ops = []
        if operands and not (operands[0][0].kind == "word"
                             and operands[0][0].text == "label"):
            ops = [_operand_or_text(operands[0])]
        return _Decoded(Opcode.BR, mnemonic, ops, successors=successors, dbg=dbg)

    if mnemonic == "phi":
        ops = []
        for tok in rest:
            if tok.kind == "bracket":
                incoming = split_commas(tok.items)
                if incoming:
                    ops.append(_operand_or_text(incoming[0]))
        return _Decoded(Opcode.OTHER, mnemonic, ops, dbg=dbg)

    ops = [_operand_or_text(seg) for seg in operands
           if not (seg[0].kind == "word" and seg[0].text == "label")]
    return _Decoded(Opcode.OTHER, mnemonic, ops, successors=successors, dbg=dbg)


def _decode_call(mnemonic: str, seg: List[Tok], successors: List[str],
                 dbg: Optional[str]) -> _Decoded:
    callee_tok: Optional[Tok] = None
    args: Optional[Tok] = None
    for i in range(len(seg) - 1):
        if seg[i].kind in ("global", "local") and seg[i + 1].kind == "paren":
            callee_tok, args = seg[i], seg[i + 1]
            break
    else:
        # Callee is a constant expression, e.g. ``bitcast (...)(args)``.
        for i in range(len(seg) - 1):
            if seg[i].kind == "paren" and seg[i + 1].kind == "paren":
                args = seg[i + 1]

    arg_segments = split_commas(args.items) if args is not None else []
    callee = None
    if callee_tok is not None and callee_tok.kind == "global":
        callee = _local_name(callee_tok)

    if callee == DBG_DECLARE_INTRINSIC and len(arg_segments) >= 2:
        address = segment_operand(arg_segments[0])
        variable = segment_operand(arg_segments[1])
        return _Decoded(
            Opcode.DBG_DECLARE, "call",
            [address] if address is not None else [],
            dbg=dbg,
            var_ref=variable.text if variable is not None else None,
        )

    return _Decoded(
        Opcode.CALL, mnemonic,
        [_operand_or_text(s) for s in arg_segments],
        callee=callee,
        callee_tok=callee_tok if callee is None else None,
        successors=successors,
        dbg=dbg,
    )


def _decode_dbg_record(args: Tok) -> _Decoded:
    """``#dbg_declare(ptr %x, !12, !DIExpression(), !15)``"""
    segments = split_commas(args.items)
    address = segment_operand(segments[0]) if segments else None
    variable = segment_operand(segments[1]) if len(segments) > 1 else None
    location = segment_operand(segments[3]) if len(segments) > 3 else None
    return _Decoded(
        Opcode.DBG_DECLARE, "#dbg_declare",
        [address] if address is not None else [],
        dbg=location.text if location is not None else None,
        var_ref=variable.text if variable is not None else None,
    )


# ═══════════════════════════════════════════════════════════════════
#  PART 4: MODULES
# ═══════════════════════════════════════════════════════════════════

def strip_comment(text: str) -> str:
    """Drop a trailing ``;`` comment that is not inside a string."""
    in_string = False
    for i, ch in enumerate(text):
        if ch == '"':
            in_string = not in_string
        elif ch == ";" and not in_string:
            return text[:i]
    return text


def group_depth(text: str) -> int:
    """Net count of group openers on *text*, outside strings and comments."""
    depth = 0
    in_string = False
    for ch in strip_comment(text):
        if ch == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif ch in "([{<":
            depth += 1
        elif ch in ")]}>":
            depth -= 1
    return depth


class _ModuleReader:

    def __init__(self, source: str):
        self.source = source
        self.module = Module(source=source)

    def read(self, text: str) -> Module:
        current: Optional[_FunctionReader] = None
        # physical lines of an instruction whose groups span several lines
        pending: List[str] = []
        pending_line = 0
        depth = 0
        for lineno, raw in enumerate(text.splitlines(), 1):
            stripped = raw.strip()
            if current is None:
                if stripped.startswith("define"):
                    current = self._header(stripped, lineno)
                elif stripped.startswith("!"):
                    self._metadata(tokenize_line(raw, lineno, self.source))
                continue
            if pending:
                pending.append(strip_comment(stripped).strip())
                depth += group_depth(raw)
                if depth > 0:
                    continue
                raw, line_at = " ".join(pending), pending_line
                pending = []
            else:
                if stripped.startswith("}"):
                    self.module.functions.append(current.build())
                    current = None
                    continue
                depth = group_depth(raw)
                if depth > 0:
                    pending, pending_line = [strip_comment(stripped).strip()], lineno
                    continue
                line_at = lineno
            toks = tokenize_line(raw, line_at, self.source)
            if toks:
                current.add_line(toks, line_at)
        if current is not None:
            raise IRParseError(f"unterminated body of @{current.name}",
                               line=lineno, source=self.source)
        self._resolve_debug_info()
        _log.debug("%s: read %d function(s), %d metadata node(s)",
                   self.source, len(self.module.functions),
                   len(self.module.metadata))
        return self.module

    def _header(self, line: str, lineno: int) -> _FunctionReader:
        if line.endswith("{"):
            line = line[:-1]
        toks = tokenize_line(line, lineno, self.source)
        for i in range(len(toks) - 1):
            if toks[i].kind == "global" and toks[i + 1].kind == "paren":
                params: List[str] = []
                implicit = 0
                for seg in split_commas(toks[i + 1].items):
                    tok = segment_operand(seg)
                    if tok is not None and tok.kind == "local":
                        params.append(_local_name(tok))
                    elif not (len(seg) == 1 and seg[0].text == "..."):
                        params.append(str(implicit))
                        implicit += 1
                return _FunctionReader(_local_name(toks[i]), params, self)
        raise IRParseError("function definition without a name",
                           line=lineno, text=line, source=self.source)

    def _metadata(self, toks: List[Tok]) -> None:
        if len(toks) < 3 or toks[1].kind != "equals":
            return
        rest = [t for t in toks[2:] if not (t.kind == "word" and t.text == "distinct")]
        if len(rest) >= 2 and rest[0].kind == "metadata" and rest[1].kind == "paren":
            node = MetadataNode(toks[0].text, rest[0].text[1:],
                                _parse_fields(rest[1].items))
        else:
            node = MetadataNode(toks[0].text, "")
        self.module.metadata[node.ident] = node

    def _location_line(self, ref: Optional[str]) -> int:
        node = self.module.metadata.get(ref) if ref else None
        if node is None or node.kind != "DILocation":
            return -1
        return node.get_int("line")

    def _resolve_debug_info(self) -> None:
        for fn in self.module.functions:
            for inst in fn.instructions():
                inst.line = self._location_line(inst.dbg)
                if inst.opcode is Opcode.DBG_DECLARE and inst.var_ref:
                    node = self.module.metadata.get(inst.var_ref)
                    if node is not None and node.kind == "DILocalVariable":
                        name = node.fields.get("name")
                        inst.variable = name if isinstance(name, str) else None


def parse_module(text: str, source: str = "<string>") -> Module:
    """Parse the text of an LLVM IR module."""
    return _ModuleReader(source).read(text)


def load_module(path: Union[str, Path]) -> Module:
    """Read and parse an ``.ll`` file."""
    p = Path(path)
    text = p.read_text(encoding="utf-8", errors="replace")
    return parse_module(text, source=str(p))
