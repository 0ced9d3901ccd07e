# tests/test_analysis.py
"""
End-to-end tests for the analysis pipeline.
"""

import json

import pytest

from bytecode_cfg import analyze_listing
from bytecode_cfg.analysis import analyze_instructions, analyze_method
from bytecode_cfg.config import AnalysisOptions
from bytecode_cfg.errors import (
    CFGError,
    DominatorConvergenceError,
    EmptyMethodError,
    MissingEntryError,
)
from bytecode_cfg.listing import find_method, parse_instructions, parse_listing
from tests.conftest import (
    DEAD_FALLS_INTO_REACHABLE,
    DEMO_CLASS,
    IF_ELSE,
    WHILE_LOOP,
)


class TestAnalyzeInstructions:

    def test_if_else(self):
        result = analyze_instructions(parse_instructions(IF_ELSE))
        assert result.edge_list() == ["0 => 1 3", "1 => 2", "2 =>", "3 => 2"]
        assert result.dominator_report()[2] == "Block 2: 0, 2"
        assert result.reachable_count == 4
        assert result.passes == 2
        assert result.method is None

    def test_options_reach_solver(self):
        insns = parse_instructions(DEAD_FALLS_INTO_REACHABLE)
        plain = analyze_instructions(insns)
        restricted = analyze_instructions(
            parse_instructions(DEAD_FALLS_INTO_REACHABLE),
            AnalysisOptions(restrict_to_reachable=True),
        )
        assert plain.dominators[2] == {2}
        assert restricted.dominators[2] == {0, 2}

    def test_pass_cap_from_options(self):
        with pytest.raises(DominatorConvergenceError):
            analyze_instructions(
                parse_instructions(WHILE_LOOP), AnalysisOptions(max_passes=1))

    def test_explicit_entry(self):
        insns = parse_instructions(WHILE_LOOP)
        result = analyze_instructions(insns, entry=insns[2])
        assert result.block_ids[1] == 0
        assert result.cfg.blocks[0].id is None

    def test_empty(self):
        with pytest.raises(EmptyMethodError):
            analyze_instructions([])

    def test_repeat_runs_identical(self):
        a = analyze_instructions(parse_instructions(WHILE_LOOP))
        b = analyze_instructions(parse_instructions(WHILE_LOOP))
        assert a.edge_list() == b.edge_list()
        assert a.dominator_report() == b.dominator_report()
        assert a.dominators == b.dominators

    def test_to_json(self):
        result = analyze_instructions(parse_instructions(WHILE_LOOP))
        data = json.loads(result.to_json())
        assert data["edges"]["1"] == [2, 3]
        assert data["dominators"]["3"] == ["0", "1", "3"]


class TestAnalyzeListing:

    def test_default_entry_is_main(self):
        result = analyze_listing(DEMO_CLASS)
        assert result.method.name == "main"
        assert result.edge_list() == ["0 => 1", "1 => 2 3", "2 =>", "3 => 1"]

    def test_other_entry_method(self):
        result = analyze_listing(DEMO_CLASS, AnalysisOptions(entry_method="helper"))
        assert result.edge_list() == ["0 =>"]
        assert result.dominator_report() == ["Block 0: 0"]

    def test_missing_entry_method(self):
        with pytest.raises(MissingEntryError):
            analyze_listing(DEMO_CLASS, AnalysisOptions(entry_method="run"))

    def test_errors_share_base(self):
        with pytest.raises(CFGError):
            analyze_listing("(method main (line 1 L0))")

    def test_analyze_method(self):
        method = find_method(parse_listing(DEMO_CLASS), "main")
        result = analyze_method(method)
        assert result.method is method
        assert len(result.cfg.instructions) == len(method.instructions)

    def test_docstring_example(self):
        result = analyze_listing("(method main (iload 0) (ireturn))")
        assert result.edge_list() == ["0 =>"]
        assert result.dominator_report() == ["Block 0: 0"]
