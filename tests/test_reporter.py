# tests/test_reporter.py
"""
Tests for the edge-list, dominator report and JSON renderers.
"""

import io
import json

from bytecode_cfg.dominators import compute_dominators
from bytecode_cfg.reporter import (
    display_name,
    dominator_report_lines,
    edge_list_lines,
    report_dict,
    successor_ids,
    to_json,
    write_dominator_report,
    write_edge_list,
)
from tests.conftest import (
    BRANCH_TO_NEXT,
    DEAD_CODE,
    DEAD_FALLS_INTO_REACHABLE,
    IF_ELSE,
    STRAIGHT_LINE,
    WHILE_LOOP,
    WITH_FILLER,
    make_cfg,
)


def _report(text, **kwargs):
    cfg = make_cfg(text)
    return dominator_report_lines(cfg, compute_dominators(cfg, **kwargs))


class TestEdgeList:

    def test_straight_line(self):
        assert edge_list_lines(make_cfg(STRAIGHT_LINE)) == ["0 =>"]

    def test_if_else(self):
        assert edge_list_lines(make_cfg(IF_ELSE)) == [
            "0 => 1 3",
            "1 => 2",
            "2 =>",
            "3 => 2",
        ]

    def test_while_loop(self):
        assert edge_list_lines(make_cfg(WHILE_LOOP)) == [
            "0 => 1",
            "1 => 2 3",
            "2 =>",
            "3 => 1",
        ]

    def test_filler_does_not_show(self):
        assert edge_list_lines(make_cfg(WITH_FILLER)) == [
            "0 => 1 2",
            "1 =>",
            "2 =>",
        ]

    def test_duplicates_collapsed(self):
        assert edge_list_lines(make_cfg(BRANCH_TO_NEXT)) == ["0 => 1", "1 =>"]

    def test_unreachable_blocks_omitted(self):
        assert edge_list_lines(make_cfg(DEAD_CODE)) == ["0 => 1", "1 =>"]

    def test_edges_out_of_unreachable_block_omitted(self):
        cfg = make_cfg(DEAD_FALLS_INTO_REACHABLE)
        assert successor_ids(cfg, 1) == [1]
        assert edge_list_lines(cfg) == ["0 => 1", "1 =>"]

    def test_write_edge_list(self):
        buf = io.StringIO()
        write_edge_list(make_cfg(IF_ELSE), buf)
        assert buf.getvalue() == "0 => 1 3\n1 => 2\n2 =>\n3 => 2\n"


class TestDominatorReport:

    def test_straight_line(self):
        assert _report(STRAIGHT_LINE) == ["Block 0: 0"]

    def test_if_else(self):
        assert _report(IF_ELSE) == [
            "Block 0: 0",
            "Block 1: 0, 1",
            "Block 2: 0, 2",
            "Block 3: 0, 3",
        ]

    def test_while_loop(self):
        assert _report(WHILE_LOOP) == [
            "Block 0: 0",
            "Block 1: 0, 1",
            "Block 2: 0, 1, 2",
            "Block 3: 0, 1, 3",
        ]

    def test_unreachable_block_listed_last(self):
        assert _report(DEAD_CODE) == [
            "Block 0: 0",
            "Block 1: 0, 1",
            "Block u1: u1",
        ]

    def test_unreachable_predecessor(self):
        assert _report(DEAD_FALLS_INTO_REACHABLE) == [
            "Block 0: 0",
            "Block 1: 1",
            "Block u1: u1",
        ]
        assert _report(DEAD_FALLS_INTO_REACHABLE, restrict_to_reachable=True)[1] == (
            "Block 1: 0, 1"
        )

    def test_write_with_header(self):
        cfg = make_cfg(STRAIGHT_LINE)
        buf = io.StringIO()
        write_dominator_report(cfg, compute_dominators(cfg), buf)
        assert buf.getvalue() == "Dominators:\nBlock 0: 0\n"

    def test_write_without_header(self):
        cfg = make_cfg(STRAIGHT_LINE)
        buf = io.StringIO()
        write_dominator_report(cfg, compute_dominators(cfg), buf, header=None)
        assert buf.getvalue() == "Block 0: 0\n"


class TestDisplayName:

    def test_reachable_uses_id(self):
        cfg = make_cfg(IF_ELSE)
        assert display_name(cfg, 2) == "1"
        assert display_name(cfg, 1) == "3"

    def test_unreachable_uses_index(self):
        assert display_name(make_cfg(DEAD_CODE), 1) == "u1"


class TestJSON:

    def test_report_dict(self):
        cfg = make_cfg(DEAD_CODE)
        data = report_dict(cfg, compute_dominators(cfg))
        assert data == {
            "blocks": 3,
            "reachable": 2,
            "edges": {"0": [1], "1": []},
            "dominators": {"0": ["0"], "1": ["0", "1"], "u1": ["u1"]},
        }

    def test_to_json_round_trips(self):
        cfg = make_cfg(WHILE_LOOP)
        dom = compute_dominators(cfg)
        assert json.loads(to_json(cfg, dom)) == report_dict(cfg, dom)

    def test_compact(self):
        cfg = make_cfg(STRAIGHT_LINE)
        text = to_json(cfg, compute_dominators(cfg), indent=None)
        assert "\n" not in text
