# tests/test_ir_parser.py
"""
Tests for the textual LLVM IR reader: line tokenization, function bodies,
debug declarations in both forms, and metadata resolution.
"""

import pytest

from seminal_input.errors import IRParseError
from seminal_input.ir import NO_LINE, Opcode, ValueKind
from seminal_input.ir_parser import (
    IR_LINE_GRAMMAR,
    group_depth,
    load_module,
    parse_module,
    segment_operand,
    split_commas,
    strip_comment,
    tokenize_line,
)
from tests.conftest import (
    FOPEN_IR,
    NESTED_LOOPS_IR,
    SCANF_IR,
    SCANF_RECORD_IR,
    SCANF_TYPED_IR,
    SWITCH_IR,
    by_name,
    declarations,
    only_function,
    parse,
    write_ir,
)


class TestLineGrammar:

    def test_grammar_default_rule(self):
        assert IR_LINE_GRAMMAR.default_rule.name == "line"

    def test_blank_and_comment_lines(self):
        assert tokenize_line("") == []
        assert tokenize_line("   ; just a comment") == []

    def test_label_line(self):
        toks = tokenize_line("for.cond:    ; preds = %for.inc, %entry")
        assert len(toks) == 1
        assert toks[0].kind == "label"
        assert toks[0].text == "for.cond"

    def test_instruction_tokens(self):
        toks = tokenize_line("  %x = alloca i32, align 4")
        kinds = [t.kind for t in toks]
        assert kinds == ["local", "equals", "word", "word", "comma", "word", "number"]

    def test_groups_are_nested(self):
        toks = tokenize_line("call void @g(i32 %a, ptr %b)")
        paren = toks[-1]
        assert paren.kind == "paren"
        assert [t.text for t in paren.items if t.kind == "local"] == ["%a", "%b"]

    def test_metadata_fields(self):
        toks = tokenize_line('!16 = !DILocation(line: 3, column: 7, scope: !10)')
        assert toks[0].kind == "metadata"
        assert toks[2].text == "!DILocation"
        fields = [t.text for t in toks[3].items if t.kind == "field"]
        assert fields == ["line", "column", "scope"]

    def test_unbalanced_line_raises(self):
        with pytest.raises(IRParseError) as info:
            tokenize_line("call void @g(i32 %a", lineno=7, source="bad.ll")
        assert info.value.line == 7
        assert "bad.ll:7" in str(info.value)

    @pytest.mark.parametrize("text,depth", [
        ("  switch i32 %0, label %sw.default [", 1),
        ("    i32 1, label %sw.bb", 0),
        ("  ], !dbg !18", -1),
        ("  call void @g(ptr @s) ; (", 0),
        ('  store ptr c"[(", ptr %p', 0),
    ])
    def test_group_depth(self, text, depth):
        assert group_depth(text) == depth

    def test_strip_comment_keeps_strings(self):
        assert strip_comment('@s = c";x" ; tail') == '@s = c";x" '
        assert strip_comment("br label %a") == "br label %a"


class TestOperandHelpers:

    def test_split_commas_top_level_only(self):
        toks = tokenize_line("i32 %a, ptr getelementptr (i8, ptr @s, i64 1), i32 3")
        segments = split_commas(toks)
        assert len(segments) == 3

    def test_segment_operand_picks_value(self):
        seg = tokenize_line("ptr noundef %x")
        assert segment_operand(seg).text == "%x"

    def test_segment_operand_bare_type(self):
        assert segment_operand(tokenize_line("i32")) is None

    def test_segment_operand_constant_word(self):
        assert segment_operand(tokenize_line("ptr null")).text == "null"

    def test_segment_operand_stops_at_to(self):
        seg = tokenize_line("i32 %v to i64")
        assert segment_operand(seg).text == "%v"


class TestFunctionBodies:

    def test_function_name_and_blocks(self, scanf_fn):
        assert scanf_fn.name == "f"
        assert [b.label for b in scanf_fn.blocks] == ["entry"]

    def test_declarations_outside_bodies_ignored(self):
        module = parse(SCANF_IR)
        assert [fn.name for fn in module] == ["f"]

    def test_instruction_kinds(self, scanf_fn):
        opcodes = [inst.opcode for inst in scanf_fn.instructions()]
        assert opcodes == [Opcode.ALLOCA, Opcode.DBG_DECLARE, Opcode.CALL, Opcode.OTHER]

    def test_call_callee_and_arguments(self, scanf_fn):
        call = [i for i in scanf_fn.instructions() if i.opcode is Opcode.CALL][0]
        assert call.callee == "__isoc99_scanf"
        args = [scanf_fn.value(a) for a in call.arguments]
        assert args[0].kind is ValueKind.GLOBAL
        assert args[0].name == ".str"
        assert args[1].index == by_name(scanf_fn)["x"]
        assert not call.is_void

    def test_void_call_has_no_result(self):
        fn = only_function(FOPEN_IR)
        names = by_name(fn)
        assert "call" in names and "call1" in names
        decl = [i for i in fn.instructions() if i.opcode is Opcode.DBG_DECLARE][0]
        assert not decl.has_result

    def test_store_operands(self):
        fn = only_function(FOPEN_IR)
        names = by_name(fn)
        store = [i for i in fn.instructions() if i.opcode is Opcode.STORE][0]
        assert store.value_operand == names["call"]
        assert store.pointer_operand == names["fp"]

    def test_load_pointer_operand(self, chain_fn):
        names = by_name(chain_fn)
        load = chain_fn.instruction(names["1"])
        assert load.opcode is Opcode.LOAD
        assert load.pointer_operand == names["0"]

    def test_branch_successors_and_condition(self, nested_fn):
        outer = nested_fn.block("outer")
        assert outer.successors == ["inner", "exit"]
        br = list(nested_fn.block_instructions(outer))[-1]
        assert br.is_conditional
        assert br.condition == by_name(nested_fn)["c1"]

    def test_unconditional_branch(self, nested_fn):
        br = list(nested_fn.block_instructions(nested_fn.block("outer.latch")))[-1]
        assert br.opcode is Opcode.BR
        assert not br.is_conditional
        assert br.successors == ["outer"]

    def test_forward_reference_in_phi(self, nested_fn):
        names = by_name(nested_fn)
        phi = nested_fn.instruction(names["i"])
        assert phi.mnemonic == "phi"
        assert phi.operands[1] == names["i.next"]
        assert nested_fn.value(phi.operands[0]).kind is ValueKind.CONSTANT

    def test_arguments_are_values(self, nested_fn):
        assert len(nested_fn.arguments) == 1
        arg = nested_fn.value(nested_fn.arguments[0])
        assert arg.kind is ValueKind.ARGUMENT
        assert arg.name == "n"

    def test_multi_line_switch(self):
        fn = only_function(SWITCH_IR)
        entry = fn.block("entry")
        assert entry.successors == ["sw.default", "sw.bb", "sw.bb1"]
        switch = list(fn.block_instructions(entry))[-1]
        assert switch.mnemonic == "switch"
        assert switch.operands == [by_name(fn)["0"]]
        assert switch.line == 5
        assert [b.label for b in fn.blocks] == [
            "entry", "sw.bb", "sw.bb1", "sw.default", "sw.epilog"]

    def test_branch_targets_are_labels_not_values(self, nested_fn):
        assert {k.name for k in ValueKind} == {
            "INSTRUCTION", "ARGUMENT", "GLOBAL", "CONSTANT", "METADATA"}
        br = list(nested_fn.block_instructions(nested_fn.block("outer.latch")))[-1]
        assert br.operands == []
        assert br.successors == ["outer"]

    def test_multi_line_switch_does_not_hide_next_function(self):
        module = parse(SWITCH_IR + SCANF_IR)
        assert [fn.name for fn in module] == ["pick", "f"]

    def test_implicit_entry_label(self):
        fn = only_function(SCANF_TYPED_IR)
        assert fn.blocks[0].label == "0"

    def test_implicit_entry_label_after_numbered_params(self):
        fn = only_function(
            "define i32 @g(i32 noundef %0) {\n"
            "  %2 = alloca i32, align 4\n"
            "  ret i32 %0\n"
            "}\n"
        )
        assert fn.blocks[0].label == "1"
        ret = list(fn.instructions())[-1]
        assert fn.value(ret.operands[0]).kind is ValueKind.ARGUMENT

    def test_interned_globals(self):
        fn = only_function(
            "define void @h() {\n"
            "  call void @use(ptr @g)\n"
            "  call void @use(ptr @g)\n"
            "  ret void\n"
            "}\n"
        )
        calls = [i for i in fn.instructions() if i.opcode is Opcode.CALL]
        assert calls[0].arguments == calls[1].arguments


class TestDebugDeclarations:

    def test_intrinsic_form(self, scanf_fn):
        decl = [i for i in scanf_fn.instructions()
                if i.opcode is Opcode.DBG_DECLARE][0]
        assert decl.address == by_name(scanf_fn)["x"]
        assert decl.variable == "x"
        assert decl.line == 3

    def test_record_form(self):
        fn = only_function(SCANF_RECORD_IR)
        decls = [i for i in fn.instructions() if i.opcode is Opcode.DBG_DECLARE]
        assert len(decls) == 1
        assert decls[0].variable == "x"
        assert decls[0].line == 3
        assert decls[0].address == by_name(fn)["x"]

    def test_dbg_value_records_skipped(self):
        fn = only_function(SCANF_RECORD_IR)
        mnemonics = [i.mnemonic for i in fn.instructions()]
        assert "#dbg_value" not in mnemonics

    def test_typed_pointers(self):
        fn = only_function(SCANF_TYPED_IR)
        assert declarations(fn) == ["x"]
        call = [i for i in fn.instructions() if i.opcode is Opcode.CALL][0]
        assert call.arguments[1] == by_name(fn)["1"]

    def test_missing_location_gives_no_line(self):
        fn = only_function(
            "define void @k() {\n"
            "  %x = alloca i32, align 4\n"
            "  call void @llvm.dbg.declare(metadata ptr %x, metadata !5, metadata !DIExpression())\n"
            "  ret void\n"
            "}\n"
            '!5 = !DILocalVariable(name: "x", line: 9)\n'
        )
        decl = [i for i in fn.instructions() if i.opcode is Opcode.DBG_DECLARE][0]
        assert decl.variable == "x"
        assert decl.line == NO_LINE

    def test_missing_variable_node(self):
        fn = only_function(
            "define void @k() {\n"
            "  %x = alloca i32, align 4\n"
            "  call void @llvm.dbg.declare(metadata ptr %x, metadata !5, metadata !DIExpression())\n"
            "  ret void\n"
            "}\n"
        )
        assert declarations(fn) == [None]


class TestModules:

    def test_metadata_nodes(self):
        module = parse(SCANF_IR)
        loc = module.metadata["!16"]
        assert loc.kind == "DILocation"
        assert loc.get_int("line") == 3
        assert loc.get_int("missing") == NO_LINE
        assert module.metadata["!15"].fields["name"] == "x"

    def test_function_lookup(self):
        module = parse(SCANF_IR + FOPEN_IR)
        assert [fn.name for fn in module] == ["f", "open_it"]
        assert module.function("open_it") is module.functions[1]
        assert module.function("nope") is None

    def test_unterminated_body(self):
        with pytest.raises(IRParseError, match="unterminated"):
            parse_module("define void @k() {\n  ret void\n")

    def test_result_without_instruction(self):
        with pytest.raises(IRParseError) as info:
            parse_module("define void @k() {\n  %x =\n}\n", source="k.ll")
        assert info.value.line == 2
        assert info.value.source == "k.ll"

    def test_unknown_record(self):
        with pytest.raises(IRParseError, match="unexpected record"):
            parse_module("define void @k() {\n  #dbg_bogus(i32 0)\n}\n")

    def test_multi_line_error_reports_first_line(self):
        with pytest.raises(IRParseError, match="unexpected record") as info:
            parse_module("define void @k() {\n  #dbg_bogus(\n    i32 0)\n}\n")
        assert info.value.line == 2

    def test_load_module(self, tmp_path):
        path = write_ir(tmp_path, "nested.ll", NESTED_LOOPS_IR)
        module = load_module(path)
        assert module.source == str(path)
        assert module.function("nested") is not None
