"""
bytecode_cfg/reporter.py
════════════════════════

Renders analysis results for the outside world.

Output formats
──────────────
  • Edge list  : one line per reachable block, ``<id> => <succ> <succ> ...``
  • Dominators : one line per block, ``Block <id>: <dom>, <dom>, ...``
  • JSON       : both of the above as one document

Unreachable blocks never appear in the edge list.  In the dominator
report they are shown as ``u<arena index>``, after every reachable block.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Set, TextIO, Tuple

from .ctrlflow_graph import CFG
from .numbering import assign_ids


# ═════════════════════════════════════════════════════════════════════════
#  DISPLAY HELPERS
# ═════════════════════════════════════════════════════════════════════════

def display_name(cfg: CFG, index: int) -> str:
    """Public name of a block: its pre-order id, or ``u<index>``."""
    ids = assign_ids(cfg)
    if index in ids:
        return str(ids[index])
    return f"u{index}"


def _order_key(ids: Mapping[int, int], index: int) -> Tuple[int, int]:
    if index in ids:
        return (0, ids[index])
    return (1, index)


def successor_ids(cfg: CFG, index: int) -> List[int]:
    """Deduplicated successor ids of a block, first-seen order.

    Successors without an id (unreachable) are omitted.
    """
    ids = assign_ids(cfg)
    seen: Set[int] = set()
    result: List[int] = []
    for succ in cfg.blocks[index].successors:
        sid = ids.get(succ)
        if sid is None or sid in seen:
            continue
        seen.add(sid)
        result.append(sid)
    return result


# ═════════════════════════════════════════════════════════════════════════
#  EDGE LIST
# ═════════════════════════════════════════════════════════════════════════

def edge_list_lines(cfg: CFG) -> List[str]:
    """Return the edge-list artifact as a list of lines (no newlines)."""
    ids = assign_ids(cfg)
    lines = []
    for index, block_id in sorted(ids.items(), key=lambda kv: kv[1]):
        line = f"{block_id} =>"
        for sid in successor_ids(cfg, index):
            line += f" {sid}"
        lines.append(line)
    return lines


def write_edge_list(cfg: CFG, stream: TextIO) -> None:
    for line in edge_list_lines(cfg):
        stream.write(line + "\n")


# ═════════════════════════════════════════════════════════════════════════
#  DOMINATORS
# ═════════════════════════════════════════════════════════════════════════

def dominator_report_lines(
    cfg: CFG,
    dominators: Mapping[int, Set[int]],
) -> List[str]:
    """Return ``Block <id>: <dom>, ...`` lines for every block in *dominators*.

    Blocks are listed reachable-first in id order; dominators within a
    line follow the same ordering (ascending ids, then unreachable blocks
    by arena index).
    """
    ids = assign_ids(cfg)
    lines = []
    for index in sorted(dominators, key=lambda i: _order_key(ids, i)):
        doms = sorted(dominators[index], key=lambda i: _order_key(ids, i))
        names = ", ".join(display_name(cfg, d) for d in doms)
        lines.append(f"Block {display_name(cfg, index)}: {names}")
    return lines


def write_dominator_report(
    cfg: CFG,
    dominators: Mapping[int, Set[int]],
    stream: TextIO,
    header: Optional[str] = "Dominators:",
) -> None:
    if header:
        stream.write(header + "\n")
    for line in dominator_report_lines(cfg, dominators):
        stream.write(line + "\n")


# ═════════════════════════════════════════════════════════════════════════
#  JSON
# ═════════════════════════════════════════════════════════════════════════

def report_dict(
    cfg: CFG,
    dominators: Mapping[int, Set[int]],
) -> Dict[str, Any]:
    """Return edges and dominators as plain JSON-serialisable data."""
    ids = assign_ids(cfg)
    edges = {
        str(block_id): successor_ids(cfg, index)
        for index, block_id in sorted(ids.items(), key=lambda kv: kv[1])
    }
    doms = {}
    for index in sorted(dominators, key=lambda i: _order_key(ids, i)):
        ordered = sorted(dominators[index], key=lambda i: _order_key(ids, i))
        doms[display_name(cfg, index)] = [display_name(cfg, d) for d in ordered]
    return {
        "blocks": len(cfg.blocks),
        "reachable": len(ids),
        "edges": edges,
        "dominators": doms,
    }


def to_json(
    cfg: CFG,
    dominators: Mapping[int, Set[int]],
    indent: Optional[int] = 2,
) -> str:
    return json.dumps(report_dict(cfg, dominators), indent=indent)
