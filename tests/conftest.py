# tests/conftest.py
"""
Shared listings and builders for the bytecode_cfg test suite.

Listings are bare instruction sequences (see
``bytecode_cfg.listing.parse_instructions``) unless their name ends in
``_CLASS``.  Arena indices referred to in the comments are the partition
order of the blocks.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Set

import pytest

from bytecode_cfg.ctrlflow_graph import CFG, build_cfg
from bytecode_cfg.dominators import compute_dominators
from bytecode_cfg.instructions import Instruction
from bytecode_cfg.listing import parse_instructions
from bytecode_cfg.numbering import assign_ids


# ── Listings ─────────────────────────────────────────────────────

# One block, no edges.
STRAIGHT_LINE = """
(iload 0)
(iload 1)
(iadd)
(ireturn)
"""

# if/else joining at JOIN.
# B0 = cond, B1 = then (fall-through), B2 = ELSE, B3 = JOIN.
IF_ELSE = """
(iload 0)
(ifeq ELSE)
(iconst_1)
(istore 1)
(goto JOIN)
(label ELSE)
(iconst_2)
(istore 1)
(label JOIN)
(iload 1)
(ireturn)
"""

# while loop: B0 = init, B1 = HEAD, B2 = body, B3 = EXIT.
WHILE_LOOP = """
(iconst_0)
(istore 1)
(label HEAD)
(iload 1)
(bipush 10)
(if_icmpge EXIT)
(iinc 1 1)
(goto HEAD)
(label EXIT)
(iload 1)
(ireturn)
"""

# do/while loop: B1 branches back to itself.
DO_WHILE = """
(iconst_0)
(istore 1)
(label HEAD)
(iinc 1 1)
(iload 1)
(bipush 10)
(if_icmplt HEAD)
(iload 1)
(ireturn)
"""

# Conditional jump to a label that never appears: B0 only falls through.
UNRESOLVED_COND = """
(iload 0)
(ifeq NOWHERE)
(iconst_1)
(ireturn)
"""

# Unconditional jump to a label that never appears: no successors at all.
UNRESOLVED_GOTO = """
(iconst_0)
(goto MISSING)
"""

# The goto DEAD sits in the middle of B0 so it is never a terminal and B1
# (DEAD) has no predecessors.  B2 = END.
DEAD_CODE = """
(iload 0)
(goto DEAD)
(pop)
(goto END)
(label DEAD)
(iconst_1)
(ireturn)
(label END)
(return)
"""

# Like DEAD_CODE, but the dead block falls through into END.
DEAD_FALLS_INTO_REACHABLE = """
(iload 0)
(goto DEAD)
(pop)
(goto END)
(label DEAD)
(iconst_1)
(pop)
(label END)
(return)
"""

# B2 holds only the marker for A: it has no terminal and no edges.
LABEL_ONLY_BLOCK = """
(iload 0)
(ifeq A)
(goto B)
(label A)
(label B)
(return)
"""

# Branch and fall-through both reach NEXT.
BRANCH_TO_NEXT = """
(iload 0)
(ifeq NEXT)
(label NEXT)
(return)
"""

# Filler everywhere, including before the first executable instruction.
WITH_FILLER = """
(line 1 L0)
(label L0)
(iload 0)
(line 2 L0)
(ifeq X)
(line 3 L0)
(iconst_1)
(ireturn)
(label X)
(frame same)
(iconst_0)
(ireturn)
"""

DEMO_CLASS = """
(class Demo
  (method helper "()I"
    (iconst_1)
    (ireturn))
  (method main "([Ljava/lang/String;)V"
    (iconst_0)
    (istore 1)
    (label HEAD)
    (iload 1)
    (bipush 10)
    (if_icmpge EXIT)
    (iinc 1 1)
    (goto HEAD)
    (label EXIT)
    (return)))
"""

ALL_LISTINGS = {
    "straight_line": STRAIGHT_LINE,
    "if_else": IF_ELSE,
    "while_loop": WHILE_LOOP,
    "do_while": DO_WHILE,
    "unresolved_cond": UNRESOLVED_COND,
    "unresolved_goto": UNRESOLVED_GOTO,
    "dead_code": DEAD_CODE,
    "dead_falls_into_reachable": DEAD_FALLS_INTO_REACHABLE,
    "label_only_block": LABEL_ONLY_BLOCK,
    "branch_to_next": BRANCH_TO_NEXT,
    "with_filler": WITH_FILLER,
}


# ── Builders ─────────────────────────────────────────────────────

def make_cfg(text: str, entry: Optional[Instruction] = None) -> CFG:
    """Parse *text* as bare instructions and build its CFG."""
    return build_cfg(parse_instructions(text), entry=entry)


def make_numbered_cfg(text: str) -> CFG:
    cfg = make_cfg(text)
    assign_ids(cfg)
    return cfg


def succ_indices(cfg: CFG) -> List[List[int]]:
    """Successor arena indices of every block, duplicates kept."""
    return [list(b.successors) for b in cfg.blocks]


def dominators_by_id(cfg: CFG, dom: Dict[int, Set[int]]) -> Dict[int, Set[int]]:
    """Re-key a reachable-only view of *dom* by pre-order id."""
    ids = assign_ids(cfg)
    return {
        ids[b]: {ids[d] for d in doms if d in ids}
        for b, doms in dom.items() if b in ids
    }


def solve(text: str, **kwargs) -> Dict[int, Set[int]]:
    return compute_dominators(make_cfg(text), **kwargs)


def opcodes(instructions: Sequence[Instruction]) -> List[str]:
    return [i.opcode for i in instructions]


# ── Fixtures ─────────────────────────────────────────────────────

@pytest.fixture(params=sorted(ALL_LISTINGS))
def any_listing(request) -> str:
    """Each shared listing in turn."""
    return ALL_LISTINGS[request.param]


@pytest.fixture
def listing_file(tmp_path):
    """Write DEMO_CLASS to disk and return its path."""
    path = tmp_path / "demo.sexp"
    path.write_text(DEMO_CLASS, encoding="utf-8")
    return path


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every BYTECODE_CFG_* variable from the environment."""
    for name in (
        "BYTECODE_CFG_ENTRY_METHOD",
        "BYTECODE_CFG_ENTRY_DESCRIPTOR",
        "BYTECODE_CFG_REACHABLE_ONLY",
        "BYTECODE_CFG_MAX_PASSES",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
