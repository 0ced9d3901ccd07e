"""
bytecode_cfg.dominators
=======================

Iterative dominator-set computation.

For every block ``b`` the solver computes ``Dom(b)``, the set of blocks
that lie on every path from the entry block to ``b``.  The classical
round-robin fixpoint is used:

    Dom(entry) = {entry}
    Dom(b)     = {b} ∪ ⋂ { Dom(p) : p ∈ preds(b) }

starting from ``Dom(b) = all blocks`` for every non-entry block.  Sets only
shrink and are bounded below by ``{b}``, so the iteration reaches a fixed
point on the finite lattice.  A block without predecessors ends with
``Dom(b) = {b}``.

By default *every* block takes part, reachable or not, and every
predecessor enters the intersection.  With ``restrict_to_reachable=True``
only blocks reachable from entry are iterated and unreachable
predecessors are ignored; unreachable blocks get ``{b}`` directly.

Sets are expressed over arena indices (``BasicBlock.index``).

References
----------
Aho, Lam, Sethi, Ullman – "Compilers: Principles, Techniques, and
Tools", 2e, §9.6.1.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set, Union

from .ctrlflow_graph import CFG, BasicBlock
from .errors import DominatorConvergenceError

logger = logging.getLogger(__name__)

BlockRef = Union[BasicBlock, int]


def _index(ref: BlockRef) -> int:
    return ref.index if isinstance(ref, BasicBlock) else ref


class DominatorSolver:
    """Round-robin dominator fixpoint over the blocks of a :class:`CFG`.

    Parameters
    ----------
    cfg:
        The graph to analyse.
    restrict_to_reachable:
        Iterate only over blocks reachable from entry.
    max_passes:
        Cap on full passes.  ``None`` uses ``n*n + 2`` for ``n`` blocks:
        every pass that changes something removes at least one member
        from the sets, whose total size never exceeds ``n*n``.
    record_history:
        Keep a per-pass snapshot of every set's size in ``history``.

    Attributes after :meth:`compute`:
        dom      : Dict[index, Set[index]]
        passes   : int, full passes run, including the final quiet one
        history  : List[Dict[index, int]], snapshot 0 is the initial state
    """

    def __init__(
        self,
        cfg: CFG,
        *,
        restrict_to_reachable: bool = False,
        max_passes: Optional[int] = None,
        record_history: bool = False,
    ) -> None:
        self.cfg = cfg
        self.restrict_to_reachable = restrict_to_reachable
        self.max_passes = max_passes
        self.record_history = record_history
        self.dom: Dict[int, Set[int]] = {}
        self.passes: int = 0
        self.history: List[Dict[int, int]] = []
        self._computed = False

    # ---- public API --------------------------------------------------

    def compute(self) -> Dict[int, Set[int]]:
        """Run the fixpoint (once) and return ``{index: dominator indices}``."""
        if not self._computed:
            self._solve()
            self._computed = True
        return self.dom

    def dominators_of(self, block: BlockRef) -> Set[int]:
        return self.compute()[_index(block)]

    def dominates(self, a: BlockRef, b: BlockRef) -> bool:
        """Return True if *a* dominates *b*.  A block dominates itself."""
        return _index(a) in self.dominators_of(b)

    # ---- internals ---------------------------------------------------

    def _solve(self) -> None:
        blocks = self.cfg.blocks
        n = len(blocks)
        entry = self.cfg.entry_index

        if self.restrict_to_reachable:
            universe = self.cfg.reachable_from()
        else:
            universe = set(range(n))
        active = [i for i in range(n) if i in universe]

        dom: Dict[int, Set[int]] = {}
        for i in range(n):
            if i == entry:
                dom[i] = {entry}
            elif i in universe:
                dom[i] = set(universe)
            else:
                dom[i] = {i}
        self._snapshot(dom)

        cap = self.max_passes if self.max_passes is not None else n * n + 2
        passes = 0
        changed = True
        while changed:
            if passes >= cap:
                raise DominatorConvergenceError(
                    f"dominator sets still changing after {passes} passes "
                    f"over {n} blocks"
                )
            passes += 1
            changed = False
            for b in active:
                if b == entry:
                    continue
                preds = [p for p in blocks[b].predecessors if p in universe]
                if preds:
                    new_dom = set.intersection(*(dom[p] for p in preds))
                    new_dom.add(b)
                else:
                    new_dom = {b}
                if new_dom != dom[b]:
                    dom[b] = new_dom
                    changed = True
            self._snapshot(dom)

        self.dom = dom
        self.passes = passes
        logger.debug("dominators converged after %d passes over %d blocks",
                     passes, n)

    def _snapshot(self, dom: Dict[int, Set[int]]) -> None:
        if self.record_history:
            self.history.append({i: len(s) for i, s in dom.items()})


def compute_dominators(
    cfg: CFG,
    *,
    restrict_to_reachable: bool = False,
    max_passes: Optional[int] = None,
) -> Dict[int, Set[int]]:
    """Return the dominator sets of every block of *cfg* (by arena index)."""
    return DominatorSolver(
        cfg,
        restrict_to_reachable=restrict_to_reachable,
        max_passes=max_passes,
    ).compute()
