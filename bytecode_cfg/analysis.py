"""
bytecode_cfg/analysis.py

One-shot pipeline over a single method body:

    instructions → classify → partition → edges → number → dominators

Every call works on freshly built blocks; nothing is cached between runs.

Usage:
    from bytecode_cfg.analysis import analyze_listing

    result = analyze_listing(text)
    print("\\n".join(result.edge_list()))
    print("\\n".join(result.dominator_report()))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set

from . import reporter
from .config import AnalysisOptions
from .ctrlflow_graph import CFG, build_cfg
from .dominators import DominatorSolver
from .instructions import Instruction
from .listing import MethodBody, find_method, parse_listing
from .numbering import assign_ids

logger = logging.getLogger(__name__)


@dataclass
class CFGAnalysis:
    """Everything the pipeline produces for one method body.

    Attributes:
        cfg: The control flow graph (blocks carry their ids).
        block_ids: Arena index -> pre-order id, reachable blocks only.
        dominators: Arena index -> dominator arena indices, every block.
        passes: Number of dominator solver passes.
        method: The decoded method, when the input was a listing.
    """

    cfg: CFG
    block_ids: Dict[int, int]
    dominators: Dict[int, Set[int]]
    passes: int
    method: Optional[MethodBody] = None

    @property
    def reachable_count(self) -> int:
        return len(self.block_ids)

    def edge_list(self) -> List[str]:
        return reporter.edge_list_lines(self.cfg)

    def dominator_report(self) -> List[str]:
        return reporter.dominator_report_lines(self.cfg, self.dominators)

    def to_json(self) -> str:
        return reporter.to_json(self.cfg, self.dominators)


def analyze_instructions(
    instructions: Sequence[Instruction],
    options: Optional[AnalysisOptions] = None,
    entry: Optional[Instruction] = None,
) -> CFGAnalysis:
    """Run the whole pipeline on one instruction stream."""
    options = options or AnalysisOptions()
    cfg = build_cfg(instructions, entry=entry)
    ids = assign_ids(cfg)
    solver = DominatorSolver(
        cfg,
        restrict_to_reachable=options.restrict_to_reachable,
        max_passes=options.max_passes,
    )
    dominators = solver.compute()
    logger.info(
        "analysed %d instructions: %d blocks (%d reachable), %d solver passes",
        len(cfg.instructions), len(cfg.blocks), len(ids), solver.passes,
    )
    return CFGAnalysis(cfg=cfg, block_ids=ids, dominators=dominators,
                       passes=solver.passes)


def analyze_method(
    method: MethodBody,
    options: Optional[AnalysisOptions] = None,
) -> CFGAnalysis:
    result = analyze_instructions(method.instructions, options)
    result.method = method
    return result


def analyze_listing(
    text: str,
    options: Optional[AnalysisOptions] = None,
) -> CFGAnalysis:
    """Decode *text*, locate the entry method and analyse it."""
    options = options or AnalysisOptions()
    method = find_method(
        parse_listing(text), options.entry_method, options.entry_descriptor)
    return analyze_method(method, options)
