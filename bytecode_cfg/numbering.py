"""
bytecode_cfg.numbering
======================

Deterministic pre-order numbering of the blocks reachable from entry.

The ids assigned here are the canonical block numbers used in every
external output.  They form the dense range ``[0, R)`` where ``R`` is the
number of reachable blocks; the entry block is always ``0``.  Blocks that
cannot be reached from entry keep ``id = None``.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Set

from .ctrlflow_graph import CFG

logger = logging.getLogger(__name__)


def preorder(cfg: CFG) -> List[int]:
    """Return arena indices of reachable blocks in depth-first pre-order.

    Successors are explored in the order they were added to the block
    (jump target before fall-through).  The walk uses an explicit stack;
    successors are pushed in reverse so that they pop in insertion order,
    which reproduces recursive pre-order exactly.
    """
    order: List[int] = []
    visited: Set[int] = set()
    stack = [cfg.entry_index]
    while stack:
        idx = stack.pop()
        if idx in visited:
            continue
        visited.add(idx)
        order.append(idx)
        for succ in reversed(cfg.blocks[idx].successors):
            if succ not in visited:
                stack.append(succ)
    return order


def assign_ids(cfg: CFG) -> Dict[int, int]:
    """Number the reachable blocks of *cfg* and return ``{index: id}``.

    The mapping is ordered by id.  Ids are stored on the blocks
    (``BasicBlock.id``) and on ``cfg.block_ids``; a second call returns the
    existing assignment unchanged.
    """
    if cfg.block_ids is not None:
        return cfg.block_ids

    ids: Dict[int, int] = {}
    for next_id, idx in enumerate(preorder(cfg)):
        ids[idx] = next_id
        cfg.blocks[idx].id = next_id

    cfg.block_ids = ids
    unreachable = len(cfg.blocks) - len(ids)
    if unreachable:
        logger.debug("%d of %d blocks unreachable from entry",
                     unreachable, len(cfg.blocks))
    return ids
