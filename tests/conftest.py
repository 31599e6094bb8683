# tests/conftest.py
"""
Shared IR samples and helpers for the seminal-input tests.

The samples are trimmed ``clang -g -S -emit-llvm`` output: only the lines
the reader looks at (function bodies and the debug metadata they use) are
kept.
"""

from __future__ import annotations

from typing import Dict, List

import pytest

from seminal_input.ir import Function, Module, Opcode
from seminal_input.ir_parser import parse_module


# ── Scenario 1: int x; scanf("%d", &x); ──────────────────────────

SCANF_IR = r'''
; ModuleID = 'scanf.c'
source_filename = "scanf.c"

@.str = private unnamed_addr constant [3 x i8] c"%d\00", align 1

define dso_local i32 @f() #0 !dbg !10 {
entry:
  %x = alloca i32, align 4
  call void @llvm.dbg.declare(metadata ptr %x, metadata !15, metadata !DIExpression()), !dbg !16
  %call = call i32 (ptr, ...) @__isoc99_scanf(ptr noundef @.str, ptr noundef %x), !dbg !17
  ret i32 0, !dbg !18
}

declare void @llvm.dbg.declare(metadata, metadata, metadata) #1
declare i32 @__isoc99_scanf(ptr noundef, ...) #2

!10 = distinct !DISubprogram(name: "f", scope: !1, file: !1, line: 2, type: !11, scopeLine: 2, unit: !0)
!15 = !DILocalVariable(name: "x", scope: !10, file: !1, line: 3, type: !14)
!16 = !DILocation(line: 3, column: 7, scope: !10)
!17 = !DILocation(line: 4, column: 3, scope: !10)
!18 = !DILocation(line: 5, column: 1, scope: !10)
'''

# Same program, LLVM 19+ debug records instead of the intrinsic.
SCANF_RECORD_IR = r'''
define dso_local i32 @f() #0 !dbg !10 {
entry:
  %x = alloca i32, align 4
    #dbg_declare(ptr %x, !15, !DIExpression(), !16)
  %call = call i32 (ptr, ...) @__isoc99_scanf(ptr noundef @.str, ptr noundef %x), !dbg !17
    #dbg_value(i32 0, !15, !DIExpression(), !17)
  ret i32 0, !dbg !18
}

!15 = !DILocalVariable(name: "x", scope: !10, file: !1, line: 3, type: !14)
!16 = !DILocation(line: 3, column: 7, scope: !10)
!17 = !DILocation(line: 4, column: 3, scope: !10)
'''

# Same program, typed pointers and numbered values (older clang).
SCANF_TYPED_IR = r'''
define dso_local i32 @f() #0 !dbg !10 {
  %1 = alloca i32, align 4
  call void @llvm.dbg.declare(metadata i32* %1, metadata !15, metadata !DIExpression()), !dbg !16
  %2 = call i32 (i8*, ...) @__isoc99_scanf(i8* getelementptr inbounds ([3 x i8], [3 x i8]* @.str, i64 0, i64 0), i32* %1), !dbg !17
  ret i32 0, !dbg !18
}

!15 = !DILocalVariable(name: "x", scope: !10, file: !1, line: 3, type: !14)
!16 = !DILocation(line: 3, column: 7, scope: !10)
'''

# scanf("%d", &x); switch (x) { case 1: ... }  clang prints the case
# list of a switch over several lines.
SWITCH_IR = r'''
define dso_local i32 @pick() #0 !dbg !10 {
entry:
  %x = alloca i32, align 4
  call void @llvm.dbg.declare(metadata ptr %x, metadata !15, metadata !DIExpression()), !dbg !16
  %call = call i32 (ptr, ...) @__isoc99_scanf(ptr noundef @.str, ptr noundef %x), !dbg !17
  %0 = load i32, ptr %x, align 4, !dbg !18
  switch i32 %0, label %sw.default [
    i32 1, label %sw.bb
    i32 2, label %sw.bb1 ; two
  ], !dbg !18

sw.bb:                                            ; preds = %entry
  br label %sw.epilog, !dbg !19

sw.bb1:                                           ; preds = %entry
  br label %sw.epilog, !dbg !19

sw.default:                                       ; preds = %entry
  br label %sw.epilog, !dbg !19

sw.epilog:                                        ; preds = %sw.default, %sw.bb1, %sw.bb
  ret i32 0, !dbg !19
}

!15 = !DILocalVariable(name: "x", scope: !10, file: !1, line: 3, type: !14)
!16 = !DILocation(line: 3, column: 7, scope: !10)
!17 = !DILocation(line: 4, column: 3, scope: !10)
!18 = !DILocation(line: 5, column: 11, scope: !10)
!19 = !DILocation(line: 9, column: 1, scope: !10)
'''

# ── Scenario 2: FILE *fp = fopen(...); fp = tmpfile(); ───────────

FOPEN_IR = r'''
define dso_local void @open_it() #0 !dbg !50 {
entry:
  %fp = alloca ptr, align 8
  %log = alloca ptr, align 8
  call void @llvm.dbg.declare(metadata ptr %fp, metadata !51, metadata !DIExpression()), !dbg !52
  call void @llvm.dbg.declare(metadata ptr %log, metadata !57, metadata !DIExpression()), !dbg !58
  %call = call noalias ptr @fopen(ptr noundef @.str.1, ptr noundef @.str.2), !dbg !53
  store ptr %call, ptr %fp, align 8, !dbg !52
  store ptr %call, ptr %log, align 8, !dbg !58
  %call1 = call ptr @tmpfile(), !dbg !54
  store ptr %call1, ptr %fp, align 8, !dbg !55
  ret void, !dbg !56
}

!51 = !DILocalVariable(name: "fp", scope: !50, file: !1, line: 4, type: !60)
!52 = !DILocation(line: 4, column: 9, scope: !50)
!57 = !DILocalVariable(name: "log", scope: !50, file: !1, line: 5, type: !60)
!58 = !DILocation(line: 5, column: 9, scope: !50)
'''

# ── Scenario 3: loops and stores, but no input calls ─────────────

NO_INPUT_IR = r'''
define dso_local i32 @sum(i32 noundef %n) #0 !dbg !70 {
entry:
  %n.addr = alloca i32, align 4
  %s = alloca i32, align 4
  %i = alloca i32, align 4
  store i32 %n, ptr %n.addr, align 4
  call void @llvm.dbg.declare(metadata ptr %n.addr, metadata !71, metadata !DIExpression()), !dbg !72
  call void @llvm.dbg.declare(metadata ptr %s, metadata !73, metadata !DIExpression()), !dbg !74
  store i32 0, ptr %s, align 4, !dbg !74
  call void @llvm.dbg.declare(metadata ptr %i, metadata !75, metadata !DIExpression()), !dbg !76
  store i32 0, ptr %i, align 4, !dbg !76
  br label %for.cond, !dbg !77

for.cond:                                         ; preds = %for.inc, %entry
  %0 = load i32, ptr %i, align 4, !dbg !78
  %1 = load i32, ptr %n.addr, align 4, !dbg !78
  %cmp = icmp slt i32 %0, %1, !dbg !78
  br i1 %cmp, label %for.body, label %for.end, !dbg !77

for.body:                                         ; preds = %for.cond
  %2 = load i32, ptr %i, align 4, !dbg !79
  %3 = load i32, ptr %s, align 4, !dbg !79
  %add = add nsw i32 %3, %2, !dbg !79
  store i32 %add, ptr %s, align 4, !dbg !79
  br label %for.inc, !dbg !79

for.inc:                                          ; preds = %for.body
  %4 = load i32, ptr %i, align 4, !dbg !80
  %inc = add nsw i32 %4, 1, !dbg !80
  store i32 %inc, ptr %i, align 4, !dbg !80
  br label %for.cond, !dbg !77, !llvm.loop !81

for.end:                                          ; preds = %for.cond
  %5 = load i32, ptr %s, align 4, !dbg !82
  %call = call i32 (ptr, ...) @printf(ptr noundef @.str, i32 noundef %5), !dbg !82
  ret i32 %5, !dbg !83
}

!71 = !DILocalVariable(name: "n", arg: 1, scope: !70, file: !1, line: 1, type: !9)
!72 = !DILocation(line: 1, column: 13, scope: !70)
!73 = !DILocalVariable(name: "s", scope: !70, file: !1, line: 2, type: !9)
!74 = !DILocation(line: 2, column: 7, scope: !70)
!75 = !DILocalVariable(name: "i", scope: !70, file: !1, line: 3, type: !9)
!76 = !DILocation(line: 3, column: 12, scope: !70)
'''

# ── Scenario 4: for (i = 0; i < getc(&stream); i++) ; ────────────

GETC_LOOP_IR = r'''
define dso_local i32 @count() #0 !dbg !30 {
entry:
  %stream = alloca %struct._IO_FILE, align 8
  %i = alloca i32, align 4
  call void @llvm.dbg.declare(metadata ptr %stream, metadata !31, metadata !DIExpression()), !dbg !32
  call void @llvm.dbg.declare(metadata ptr %i, metadata !33, metadata !DIExpression()), !dbg !34
  store i32 0, ptr %i, align 4, !dbg !34
  br label %for.cond, !dbg !35

for.cond:                                         ; preds = %for.inc, %entry
  %0 = load i32, ptr %i, align 4, !dbg !36
  %call = call i32 @getc(ptr noundef %stream), !dbg !37
  %cmp = icmp slt i32 %0, %call, !dbg !38
  br i1 %cmp, label %for.body, label %for.end, !dbg !39

for.body:                                         ; preds = %for.cond
  br label %for.inc, !dbg !40

for.inc:                                          ; preds = %for.body
  %1 = load i32, ptr %i, align 4, !dbg !41
  %inc = add nsw i32 %1, 1, !dbg !41
  store i32 %inc, ptr %i, align 4, !dbg !41
  br label %for.cond, !dbg !42, !llvm.loop !43

for.end:                                          ; preds = %for.cond
  %2 = load i32, ptr %i, align 4, !dbg !44
  ret i32 %2, !dbg !44
}

!31 = !DILocalVariable(name: "stream", scope: !30, file: !1, line: 5, type: !20)
!32 = !DILocation(line: 5, column: 8, scope: !30)
!33 = !DILocalVariable(name: "i", scope: !30, file: !1, line: 6, type: !9)
!34 = !DILocation(line: 6, column: 7, scope: !30)
'''

# ── Control flow only: nested loops, phi cycles, a dead block ─────

NESTED_LOOPS_IR = r'''
define void @nested(i32 %n) {
entry:
  br label %outer

outer:
  %i = phi i32 [ 0, %entry ], [ %i.next, %outer.latch ]
  %c1 = icmp slt i32 %i, %n
  br i1 %c1, label %inner, label %exit

inner:
  %j = phi i32 [ 0, %outer ], [ %j.next, %inner ]
  %j.next = add i32 %j, 1
  %c2 = icmp slt i32 %j.next, %n
  br i1 %c2, label %inner, label %outer.latch

outer.latch:
  %i.next = add i32 %i, 1
  br label %outer

exit:
  ret void

dead:
  br label %outer
}
'''

# ── Pointer chains: a load of a load, and a call fed by a load ────

POINTER_CHAIN_IR = r'''
define i32 @chain() !dbg !90 {
entry:
  %p = alloca ptr, align 8
  %a = alloca i32, align 4
  call void @llvm.dbg.declare(metadata ptr %p, metadata !91, metadata !DIExpression()), !dbg !92
  call void @llvm.dbg.declare(metadata ptr %a, metadata !93, metadata !DIExpression()), !dbg !94
  %0 = load ptr, ptr %p, align 8
  %1 = load i32, ptr %0, align 4
  %2 = load i32, ptr %a, align 4
  %r = call i32 @compute(i32 %1, i32 %2)
  ret i32 %r
}

!91 = !DILocalVariable(name: "p", scope: !90, file: !1, line: 2, type: !9)
!92 = !DILocation(line: 2, column: 8, scope: !90)
!93 = !DILocalVariable(name: "a", scope: !90, file: !1, line: 3, type: !9)
!94 = !DILocation(line: 3, column: 7, scope: !90)
'''


# ── Helpers ──────────────────────────────────────────────────────

def parse(text: str, source: str = "<test>") -> Module:
    return parse_module(text, source=source)


def only_function(text: str) -> Function:
    """Parse *text* and return its single function."""
    module = parse(text)
    assert len(module) == 1
    return module.functions[0]


def by_name(function: Function) -> Dict[str, int]:
    """Map result names to arena indices."""
    return {inst.name: inst.index for inst in function.instructions()
            if inst.has_result}


def declarations(function: Function) -> List[str]:
    return [inst.variable for inst in function.instructions()
            if inst.opcode is Opcode.DBG_DECLARE]


def write_ir(directory, name: str, text: str):
    path = directory / name
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def scanf_fn() -> Function:
    return only_function(SCANF_IR)


@pytest.fixture
def fopen_fn() -> Function:
    return only_function(FOPEN_IR)


@pytest.fixture
def getc_loop_fn() -> Function:
    return only_function(GETC_LOOP_IR)


@pytest.fixture
def no_input_fn() -> Function:
    return only_function(NO_INPUT_IR)


@pytest.fixture
def nested_fn() -> Function:
    return only_function(NESTED_LOOPS_IR)


@pytest.fixture
def chain_fn() -> Function:
    return only_function(POINTER_CHAIN_IR)
