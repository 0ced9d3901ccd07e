"""
bytecode_cfg.ctrlflow_graph
===========================

Builds an intraprocedural Control Flow Graph (CFG) from a linear
instruction stream.

A CFG is a directed graph whose nodes are *basic blocks* (maximal
straight-line runs of instructions) and whose edges carry control-flow
semantics (jump, branch-taken, fall-through).

Public API
----------
    BasicBlock       - a single basic block
    CFGEdge          - a directed edge between two blocks
    CFG              - the control flow graph for one method body
    build_cfg        - build a CFG from a sequence of Instructions
    cfg_summary      - multi-line human-readable dump of a CFG

Typical usage::

    from bytecode_cfg.listing import parse_listing, find_method
    from bytecode_cfg.ctrlflow_graph import build_cfg

    method = find_method(parse_listing(text), "main")
    cfg = build_cfg(method.instructions)
    for block in cfg.blocks:
        print(block.index, [b.index for b in cfg.successors_of(block)])

Implementation notes
--------------------
* Blocks live in an arena (``CFG.blocks``) and refer to each other by
  arena index, so predecessor/successor cycles never create ownership
  cycles.
* Partitioning uses the classic leader rules: the first instruction, every
  jump target and the instruction after every *conditional* jump start a
  block.  Filler (line numbers, frames) never starts or ends a block.
* Successor lists keep insertion order (jump target before fall-through)
  and may contain duplicates; consumers deduplicate on read.
* Jumps to labels that never appear in the stream are dropped.
"""

from __future__ import annotations

import enum
import logging
from typing import (
    Dict,
    Iterator,
    List,
    Optional,
    Sequence,
    Set,
)

from .errors import EmptyMethodError, InternalError, MissingEntryError
from .instructions import (
    InsnKind,
    Instruction,
    Label,
    classify,
    is_filler,
    jump_target,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Edge kinds
# ---------------------------------------------------------------------------


class EdgeKind(enum.Enum):
    """Classification of a CFG edge."""

    JUMP = "jump"
    BRANCH_TAKEN = "branch-taken"
    FALL_THROUGH = "fall-through"


# ---------------------------------------------------------------------------
# BasicBlock
# ---------------------------------------------------------------------------

class BasicBlock:
    """A basic block in the CFG.

    Attributes
    ----------
    index : int
        Position of the block in partition order (its arena slot).
    instructions : list[Instruction]
        Ordered instructions of the block, filler included.
    successors : list[int]
        Arena indices of successor blocks, in insertion order.
    predecessors : list[int]
        Arena indices of predecessor blocks (set semantics, first-seen
        order).
    id : int or None
        Pre-order number, assigned only to blocks reachable from entry.
    """

    __slots__ = (
        "index",
        "instructions",
        "successors",
        "predecessors",
        "id",
    )

    def __init__(self, index: int) -> None:
        self.index: int = index
        self.instructions: List[Instruction] = []
        self.successors: List[int] = []
        self.predecessors: List[int] = []
        self.id: Optional[int] = None

    # ----- helpers ----------------------------------------------------------

    @property
    def terminal(self) -> Optional[Instruction]:
        """Last executable instruction, skipping filler and label markers."""
        for insn in reversed(self.instructions):
            if classify(insn).is_executable:
                return insn
        return None

    @property
    def labels(self) -> List[Label]:
        return [i.label for i in self.instructions if i.label is not None]

    @property
    def is_reachable(self) -> bool:
        return self.id is not None

    def label(self) -> str:
        """Return a compact, human-readable label for this block."""
        shown = [str(i) for i in self.instructions if not is_filler(i)]
        text = " ; ".join(shown[:4])
        if len(shown) > 4:
            text += " …"
        return text

    def __repr__(self) -> str:
        return (
            f"BasicBlock(index={self.index}, id={self.id}, "
            f"ninsns={len(self.instructions)})"
        )


# ---------------------------------------------------------------------------
# CFGEdge
# ---------------------------------------------------------------------------

class CFGEdge:
    """A directed edge in the CFG, between two arena indices."""

    __slots__ = ("src", "dst", "kind")

    def __init__(self, src: int, dst: int, kind: EdgeKind = EdgeKind.FALL_THROUGH) -> None:
        self.src = src
        self.dst = dst
        self.kind = kind

    def __repr__(self) -> str:
        return f"CFGEdge(B{self.src} -> B{self.dst}, kind={self.kind.value!r})"

    def __hash__(self) -> int:
        return hash((self.src, self.dst, self.kind))

    def __eq__(self, other) -> bool:
        if isinstance(other, CFGEdge):
            return (
                self.src == other.src
                and self.dst == other.dst
                and self.kind == other.kind
            )
        return NotImplemented


# ---------------------------------------------------------------------------
# CFG
# ---------------------------------------------------------------------------

class CFG:
    """Control flow graph for a single method body.

    Attributes
    ----------
    instructions : list[Instruction]
        The instruction stream the graph was built from.
    blocks : list[BasicBlock]
        All basic blocks, reachable or not, in partition order.
    edges : list[CFGEdge]
        All edges, in construction order.
    label_map : dict[Label, int]
        Label -> arena index of the block holding its marker.
    entry_index : int
        Arena index of the designated entry block.
    block_ids : dict[int, int] or None
        Arena index -> pre-order id, filled by
        :func:`bytecode_cfg.numbering.assign_ids`.
    """

    def __init__(self, instructions: Sequence[Instruction] = ()) -> None:
        self.instructions: List[Instruction] = list(instructions)
        self.blocks: List[BasicBlock] = []
        self.edges: List[CFGEdge] = []
        self.label_map: Dict[Label, int] = {}
        self.entry_index: int = 0
        self.block_ids: Optional[Dict[int, int]] = None

    # ----- graph mutation ---------------------------------------------------

    def add_block(self) -> BasicBlock:
        """Append a fresh, empty block to the arena and return it."""
        block = BasicBlock(len(self.blocks))
        self.blocks.append(block)
        return block

    def add_edge(
        self,
        src: BasicBlock,
        dst: BasicBlock,
        kind: EdgeKind = EdgeKind.FALL_THROUGH,
    ) -> CFGEdge:
        """Create an edge and mirror it into the destination's predecessors."""
        e = CFGEdge(src.index, dst.index, kind=kind)
        self.edges.append(e)
        src.successors.append(dst.index)
        if src.index not in dst.predecessors:
            dst.predecessors.append(src.index)
        return e

    # ----- queries ----------------------------------------------------------

    @property
    def entry(self) -> BasicBlock:
        return self.blocks[self.entry_index]

    def block_for_label(self, label: Label) -> Optional[BasicBlock]:
        """Return the block whose marker defines *label*, or ``None``."""
        idx = self.label_map.get(label)
        return self.blocks[idx] if idx is not None else None

    def block_of(self, insn: Instruction) -> Optional[BasicBlock]:
        """Return the block that contains *insn* (by identity)."""
        for block in self.blocks:
            if any(i is insn for i in block.instructions):
                return block
        return None

    def successors_of(self, block: BasicBlock) -> List[BasicBlock]:
        return [self.blocks[i] for i in block.successors]

    def predecessors_of(self, block: BasicBlock) -> List[BasicBlock]:
        return [self.blocks[i] for i in block.predecessors]

    def reachable_from(self, start: Optional[BasicBlock] = None) -> Set[int]:
        """Return the arena indices reachable from *start* (default: entry)."""
        start = start if start is not None else self.entry
        visited: Set[int] = set()
        worklist = [start.index]
        while worklist:
            n = worklist.pop()
            if n in visited:
                continue
            visited.add(n)
            worklist.extend(self.blocks[n].successors)
        return visited

    def dominators(self, **kwargs) -> Dict[int, Set[int]]:
        """Shortcut for :func:`bytecode_cfg.dominators.compute_dominators`."""
        from .dominators import compute_dominators
        return compute_dominators(self, **kwargs)

    def __len__(self) -> int:
        return len(self.blocks)

    def __iter__(self) -> Iterator[BasicBlock]:
        return iter(self.blocks)

    # ----- serialisation helpers --------------------------------------------

    def to_dot(self, title: Optional[str] = None) -> str:
        """Return a Graphviz DOT representation of this CFG.

        Blocks carry their pre-order id when one has been assigned;
        unreachable blocks are drawn dashed.
        """
        lines = ["digraph CFG {"]
        if title:
            lines.append(f'  label="{title}";')
        lines.append("  node [shape=box, fontname=monospace, fontsize=10];")
        for b in self.blocks:
            lbl = b.label().replace('"', '\\"').replace("\n", "\\n")
            name = f"#{b.id}" if b.id is not None else f"u{b.index}"
            style = ""
            if b.index == self.entry_index:
                style = ', style=filled, fillcolor="#ccffcc"'
            elif b.id is None and self.block_ids is not None:
                style = ", style=dashed"
            lines.append(f'  B{b.index} [label="{name}\\n{lbl}"{style}];')
        for e in self.edges:
            style = ""
            if e.kind == EdgeKind.BRANCH_TAKEN:
                style = ", color=green, fontcolor=green"
            elif e.kind == EdgeKind.JUMP:
                style = ", color=blue, fontcolor=blue"
            lines.append(
                f'  B{e.src} -> B{e.dst} [label="{e.kind.value}"{style}];'
            )
        lines.append("}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"CFG(instructions={len(self.instructions)}, "
            f"blocks={len(self.blocks)}, edges={len(self.edges)})"
        )


# ===========================================================================
# CFG BUILDER
# ===========================================================================

class _CFGBuilder:
    """Internal builder that constructs a CFG for one instruction stream.

    Three passes over the stream: collect leaders, partition into blocks
    (recording the label map), then derive successor edges from each
    block's terminal instruction.
    """

    def __init__(
        self,
        instructions: Sequence[Instruction],
        entry: Optional[Instruction] = None,
    ) -> None:
        self.cfg = CFG(instructions)
        self._stream: List[Instruction] = self.cfg.instructions
        self._kinds: List[InsnKind] = [classify(i) for i in self._stream]
        self._entry = entry

    # ----- main build -------------------------------------------------------

    def build(self) -> CFG:
        """Build and return the CFG."""
        leaders = self._find_leaders()
        self._partition(leaders)
        self._connect()
        logger.debug(
            "partitioned %d instructions into %d blocks with %d edges",
            len(self._stream), len(self.cfg.blocks), len(self.cfg.edges),
        )
        return self.cfg

    # ----- pass 1: leaders --------------------------------------------------

    def _next_executable(self, pos: int) -> Optional[int]:
        """Position of the first non-filler instruction at or after *pos*."""
        for i in range(pos, len(self._stream)):
            if self._kinds[i] is not InsnKind.FILLER:
                return i
        return None

    def _find_leaders(self) -> Set[int]:
        first = self._next_executable(0)
        if first is None:
            raise EmptyMethodError(
                "method body has no executable instructions",
            ).with_hint("the instruction stream is empty or holds only filler")

        markers: Dict[Label, int] = {}
        for pos, insn in enumerate(self._stream):
            if self._kinds[pos] is InsnKind.LABEL and insn.label is not None:
                markers.setdefault(insn.label, pos)

        # Rule 1: the first instruction (and an explicit entry) leads.
        leaders: Set[int] = {first}
        if self._entry is not None:
            leaders.add(self._entry_position())

        for pos, kind in enumerate(self._kinds):
            if not kind.is_jump:
                continue
            # Rule 2: every resolvable jump target leads.
            target = jump_target(self._stream[pos])
            if target is not None and target in markers:
                leaders.add(markers[target])
            # Rule 3: so does whatever follows a conditional jump.
            if kind is InsnKind.COND_JUMP:
                nxt = self._next_executable(pos + 1)
                if nxt is not None:
                    leaders.add(nxt)
        return leaders

    def _entry_position(self) -> int:
        for pos, insn in enumerate(self._stream):
            if insn is self._entry:
                if self._kinds[pos] is InsnKind.FILLER:
                    raise MissingEntryError(
                        f"entry instruction {insn!r} is a filler instruction"
                    )
                return pos
        raise MissingEntryError(
            f"entry instruction {self._entry!r} is not part of the stream"
        )

    # ----- pass 2: partition ------------------------------------------------

    def _partition(self, leaders: Set[int]) -> None:
        cfg = self.cfg
        current: Optional[BasicBlock] = None
        pending_filler: List[Instruction] = []

        for pos, insn in enumerate(self._stream):
            kind = self._kinds[pos]
            if kind is InsnKind.FILLER:
                if current is None:
                    pending_filler.append(insn)
                else:
                    current.instructions.append(insn)
                continue

            if pos in leaders:
                current = cfg.add_block()
                if pending_filler:
                    current.instructions.extend(pending_filler)
                    pending_filler = []
                if insn is self._entry:
                    cfg.entry_index = current.index

            if current is None:
                raise InternalError(
                    f"instruction {pos} precedes the first leader"
                )
            current.instructions.append(insn)
            if kind is InsnKind.LABEL and insn.label is not None:
                cfg.label_map.setdefault(insn.label, current.index)

    # ----- pass 3: edges ----------------------------------------------------

    def _connect(self) -> None:
        cfg = self.cfg
        blocks = cfg.blocks
        for i, block in enumerate(blocks):
            fallthrough = blocks[i + 1] if i + 1 < len(blocks) else None
            terminal = block.terminal
            if terminal is None:
                continue
            kind = classify(terminal)

            if kind.is_jump:
                label = jump_target(terminal)
                target = cfg.block_for_label(label) if label is not None else None
                if target is not None:
                    cfg.add_edge(
                        block, target,
                        EdgeKind.BRANCH_TAKEN if kind is InsnKind.COND_JUMP
                        else EdgeKind.JUMP,
                    )
                else:
                    logger.debug(
                        "block %d: dropping jump to unresolved label %r",
                        block.index, label,
                    )
                if kind is InsnKind.COND_JUMP and fallthrough is not None:
                    cfg.add_edge(block, fallthrough, EdgeKind.FALL_THROUGH)
            elif kind is InsnKind.RETURN:
                continue
            elif fallthrough is not None:
                cfg.add_edge(block, fallthrough, EdgeKind.FALL_THROUGH)


# ===========================================================================
# PUBLIC API
# ===========================================================================

def build_cfg(
    instructions: Sequence[Instruction],
    entry: Optional[Instruction] = None,
) -> CFG:
    """Build a :class:`CFG` for one method body.

    Parameters
    ----------
    instructions:
        The decoded instruction stream, in program order.
    entry:
        The entry instruction.  Defaults to the first non-filler
        instruction; when given it must belong to *instructions*.

    Raises
    ------
    EmptyMethodError
        If the stream holds no executable instruction.
    MissingEntryError
        If *entry* is not part of the stream (or is filler).
    """
    return _CFGBuilder(instructions, entry).build()


# ---------------------------------------------------------------------------
# Convenience: print a summary
# ---------------------------------------------------------------------------

def cfg_summary(cfg: CFG) -> str:
    """Return a multi-line human-readable summary of *cfg*."""
    lines = [repr(cfg)]
    for block in cfg.blocks:
        succ = ", ".join(f"B{e.dst}({e.kind.value})"
                         for e in cfg.edges if e.src == block.index)
        pred = ", ".join(f"B{p}" for p in block.predecessors)
        ident = "-" if block.id is None else str(block.id)
        lines.append(
            f"  B{block.index} id={ident} "
            f"insns={len(block.instructions)}  "
            f"succ=[{succ}]  "
            f"pred=[{pred}]"
        )
        for insn in block.instructions:
            lines.append(f"      {insn}")
    return "\n".join(lines)
