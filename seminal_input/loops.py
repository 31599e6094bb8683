# seminal_input/loops.py
"""
Loop discovery over a function's basic blocks.

- DominatorTree        Cooper–Harvey–Kennedy iterative dominators
- NaturalLoopDetector  back edges (n → h where h dom n) and their bodies
- top_level_loops      the roots of the loop forest, in header order

Node ids are block labels.  Blocks unreachable from the entry have no
dominator and never belong to a loop.

References
----------
[1] Cooper, Harvey, Kennedy – "A Simple, Fast Dominance Algorithm", 2001.
[2] Aho, Lam, Sethi, Ullman – "Compilers: Principles, Techniques, &
    Tools", 2e, §9.6 (natural loops).
"""

from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Deque, Dict, FrozenSet, List, Optional, Set, Tuple

from .ir import BasicBlock, Function


# ===================================================================
#  1. Dominator Tree
# ===================================================================

class DominatorTree:
    """
    Immediate dominators of the reachable blocks of a function.

    The entry block is its own immediate dominator
    (``idom[entry] == entry``); walks up the idom chain stop there.
    """

    def __init__(self, function: Function):
        self.function = function
        self.idom: Dict[str, str] = {}
        self.rpo: List[str] = []
        self._computed = False

    def compute(self) -> "DominatorTree":
        if self._computed:
            return self
        entry = self.function.entry
        self._computed = True
        if entry is None:
            return self

        self.rpo = self._reverse_postorder(entry.label)
        order = {label: i for i, label in enumerate(self.rpo)}
        preds: Dict[str, List[str]] = defaultdict(list)
        for label in self.rpo:
            for succ in self.function.successors(label):
                if succ.label in order:
                    preds[succ.label].append(label)

        self.idom = {entry.label: entry.label}
        changed = True
        while changed:
            changed = False
            for label in self.rpo[1:]:
                processed = [p for p in preds[label] if p in self.idom]
                if not processed:
                    continue
                new_idom = processed[0]
                for p in processed[1:]:
                    new_idom = self._intersect(p, new_idom, order)
                if self.idom.get(label) != new_idom:
                    self.idom[label] = new_idom
                    changed = True
        return self

    def _intersect(self, a: str, b: str, order: Dict[str, int]) -> str:
        while a != b:
            while order[a] > order[b]:
                a = self.idom[a]
            while order[b] > order[a]:
                b = self.idom[b]
        return a

    def _reverse_postorder(self, entry: str) -> List[str]:
        seen: Set[str] = {entry}
        post: List[str] = []
        # iterative DFS: (label, iterator over successor labels)
        stack = [(entry, iter(self.function.successors(entry)))]
        while stack:
            label, succs = stack[-1]
            advanced = False
            for succ in succs:
                if succ.label not in seen:
                    seen.add(succ.label)
                    stack.append((succ.label, iter(self.function.successors(succ.label))))
                    advanced = True
                    break
            if not advanced:
                post.append(label)
                stack.pop()
        post.reverse()
        return post

    def dominates(self, a: str, b: str) -> bool:
        """True if block *a* dominates block *b* (reflexive)."""
        self.compute()
        if b not in self.idom:
            return False
        cur = b
        while True:
            if cur == a:
                return True
            parent = self.idom[cur]
            if parent == cur:
                return False
            cur = parent

    def is_reachable(self, label: str) -> bool:
        self.compute()
        return label in self.idom


# ===================================================================
#  2. Natural Loops
# ===================================================================

@dataclass
class NaturalLoop:
    """
    A natural loop.

    header     : label of the header block (dominates the whole body)
    body       : labels of the blocks in the loop
    back_edges : (tail, header) pairs
    parent     : header of the innermost enclosing loop, or None
    depth      : nesting depth, 1 for top-level loops
    """
    header: str
    body: FrozenSet[str]
    back_edges: List[Tuple[str, str]]
    parent: Optional[str] = None
    depth: int = 1
    children: List[str] = field(default_factory=list)

    def header_block(self, function: Function) -> Optional[BasicBlock]:
        return function.block(self.header)


class NaturalLoopDetector:
    """Find all natural loops of a function; loops sharing a header merge."""

    def __init__(self, function: Function,
                 domtree: Optional[DominatorTree] = None):
        self.function = function
        self.domtree = domtree or DominatorTree(function)
        self._loops: Optional[List[NaturalLoop]] = None

    def detect(self) -> List[NaturalLoop]:
        """Return all loops, outermost first, then in header block order."""
        if self._loops is not None:
            return list(self._loops)
        self.domtree.compute()

        header_tails: Dict[str, List[str]] = defaultdict(list)
        for block in self.function.blocks:
            if not self.domtree.is_reachable(block.label):
                continue
            for succ in self.function.successors(block.label):
                if self.domtree.dominates(succ.label, block.label):
                    header_tails[succ.label].append(block.label)

        loops: Dict[str, NaturalLoop] = {}
        for header, tails in header_tails.items():
            body: Set[str] = {header}
            work: Deque[str] = deque()
            for tail in tails:
                if tail not in body:
                    body.add(tail)
                    work.append(tail)
            while work:
                label = work.popleft()
                for pred in self.function.predecessors(label):
                    if pred.label not in body and self.domtree.is_reachable(pred.label):
                        body.add(pred.label)
                        work.append(pred.label)
            loops[header] = NaturalLoop(
                header=header,
                body=frozenset(body),
                back_edges=[(t, header) for t in tails],
            )

        # nesting: the smallest strictly enclosing body is the parent
        by_size = sorted(loops.values(), key=lambda l: len(l.body))
        for i, inner in enumerate(by_size):
            for outer in by_size[i + 1:]:
                if inner.body < outer.body:
                    inner.parent = outer.header
                    outer.children.append(inner.header)
                    break

        for loop in loops.values():
            depth, cur = 1, loop.parent
            while cur is not None:
                depth += 1
                cur = loops[cur].parent
            loop.depth = depth

        position = {b.label: i for i, b in enumerate(self.function.blocks)}
        self._loops = sorted(loops.values(),
                             key=lambda l: (l.depth, position[l.header]))
        return list(self._loops)

    def top_level(self) -> List[NaturalLoop]:
        return [loop for loop in self.detect() if loop.parent is None]


def find_loops(function: Function, include_nested: bool = False) -> List[NaturalLoop]:
    """Loops of *function*; only the top-level ones unless *include_nested*."""
    detector = NaturalLoopDetector(function)
    return detector.detect() if include_nested else detector.top_level()


def top_level_loops(function: Function) -> List[NaturalLoop]:
    return find_loops(function)
