"""
bytecode_cfg — Control Flow Graphs and Dominators for Method Bodies
===================================================================

Builds a control flow graph from a linear instruction stream and computes,
for every basic block, the set of blocks that dominate it.

Core modules
------------
instructions
    Instruction records, labels and the control-flow classifier.
ctrlflow_graph
    Leader-based partitioning into basic blocks and edge construction.
numbering
    Deterministic pre-order numbering of reachable blocks.
dominators
    Iterative fixpoint computation of dominator sets.
reporter
    Edge-list, dominator report and JSON rendering.
listing
    S-expression method listings (the decoder side).
analysis
    The whole pipeline for one method body.

Quick start
-----------
>>> from bytecode_cfg import analyze_listing
>>> result = analyze_listing("(method main (iload 0) (ireturn))")
>>> result.edge_list()
['0 =>']
>>> result.dominator_report()
['Block 0: 0']
"""

from __future__ import annotations

import importlib
import logging
import sys
from typing import TYPE_CHECKING, List

# ---------------------------------------------------------------------------
# Package metadata
# ---------------------------------------------------------------------------

__version__ = "0.1.0"
__all__: List[str] = []          # populated below

_log = logging.getLogger(__name__)
_log.addHandler(logging.NullHandler())

# ---------------------------------------------------------------------------
# Internal registry: (module_name, list_of_names_to_re-export)
# ---------------------------------------------------------------------------

_CORE_MODULES = {
    "errors": [
        "CFGError",
        "PreconditionError",
        "EmptyMethodError",
        "MissingEntryError",
        "ListingError",
        "DominatorConvergenceError",
    ],
    "instructions": [
        "InsnKind",
        "Instruction",
        "Label",
        "classify",
        "jump_target",
    ],
    "ctrlflow_graph": [
        "BasicBlock",
        "CFGEdge",
        "EdgeKind",
        "CFG",
        "build_cfg",
        "cfg_summary",
    ],
    "numbering": [
        "assign_ids",
    ],
    "dominators": [
        "DominatorSolver",
        "compute_dominators",
    ],
    "reporter": [
        "edge_list_lines",
        "dominator_report_lines",
    ],
    "listing": [
        "Listing",
        "MethodBody",
        "parse_listing",
        "parse_instructions",
        "find_method",
    ],
    "config": [
        "AnalysisOptions",
    ],
    "analysis": [
        "CFGAnalysis",
        "analyze_instructions",
        "analyze_listing",
    ],
}


def _import_names(module_rel_name: str, names: List[str]) -> None:
    """Import *names* from a submodule and bind them in the package namespace."""
    fq_name = f"{__name__}.{module_rel_name}"
    try:
        mod = importlib.import_module(fq_name)
    except ImportError as exc:
        raise ImportError(
            f"bytecode_cfg: required submodule '{module_rel_name}' "
            f"failed to import: {exc}"
        ) from exc

    current_module = sys.modules[__name__]
    for name in names:
        obj = getattr(mod, name, None)
        if obj is None:
            raise AttributeError(
                f"bytecode_cfg.{module_rel_name} does not export '{name}'"
            )
        setattr(current_module, name, obj)
        __all__.append(name)

    if module_rel_name not in __all__:
        __all__.append(module_rel_name)


for _mod, _names in _CORE_MODULES.items():
    _import_names(_mod, _names)

del _mod, _names

__all__ += ["__version__"]

# ---------------------------------------------------------------------------
# TYPE_CHECKING block: names visible to type checkers
# ---------------------------------------------------------------------------

if TYPE_CHECKING:
    from .errors import (
        CFGError as CFGError,
        PreconditionError as PreconditionError,
        EmptyMethodError as EmptyMethodError,
        MissingEntryError as MissingEntryError,
        ListingError as ListingError,
        DominatorConvergenceError as DominatorConvergenceError,
    )
    from .instructions import (
        InsnKind as InsnKind,
        Instruction as Instruction,
        Label as Label,
        classify as classify,
        jump_target as jump_target,
    )
    from .ctrlflow_graph import (
        BasicBlock as BasicBlock,
        CFGEdge as CFGEdge,
        EdgeKind as EdgeKind,
        CFG as CFG,
        build_cfg as build_cfg,
        cfg_summary as cfg_summary,
    )
    from .numbering import assign_ids as assign_ids
    from .dominators import (
        DominatorSolver as DominatorSolver,
        compute_dominators as compute_dominators,
    )
    from .reporter import (
        edge_list_lines as edge_list_lines,
        dominator_report_lines as dominator_report_lines,
    )
    from .listing import (
        Listing as Listing,
        MethodBody as MethodBody,
        parse_listing as parse_listing,
        parse_instructions as parse_instructions,
        find_method as find_method,
    )
    from .config import AnalysisOptions as AnalysisOptions
    from .analysis import (
        CFGAnalysis as CFGAnalysis,
        analyze_instructions as analyze_instructions,
        analyze_listing as analyze_listing,
    )
