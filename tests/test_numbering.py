# tests/test_numbering.py
"""
Tests for pre-order numbering of reachable blocks.
"""

from bytecode_cfg.listing import parse_instructions
from bytecode_cfg.ctrlflow_graph import build_cfg
from bytecode_cfg.numbering import assign_ids, preorder
from tests.conftest import (
    DEAD_CODE,
    IF_ELSE,
    LABEL_ONLY_BLOCK,
    STRAIGHT_LINE,
    WHILE_LOOP,
    make_cfg,
)


def _recursive_preorder(cfg):
    order, seen = [], set()

    def visit(i):
        seen.add(i)
        order.append(i)
        for s in cfg.blocks[i].successors:
            if s not in seen:
                visit(s)

    visit(cfg.entry_index)
    return order


class TestPreorder:

    def test_single_block(self):
        assert preorder(make_cfg(STRAIGHT_LINE)) == [0]

    def test_branch_target_visited_first(self):
        # B0 -> [B2 (ELSE), B1 (then)]; B2 -> B3; B1 -> B3
        assert preorder(make_cfg(IF_ELSE)) == [0, 2, 3, 1]

    def test_loop(self):
        assert preorder(make_cfg(WHILE_LOOP)) == [0, 1, 3, 2]

    def test_matches_recursive_walk(self, any_listing):
        cfg = make_cfg(any_listing)
        assert preorder(cfg) == _recursive_preorder(cfg)

    def test_unreachable_blocks_excluded(self):
        assert preorder(make_cfg(DEAD_CODE)) == [0, 2]


class TestAssignIds:

    def test_ids_are_dense(self, any_listing):
        cfg = make_cfg(any_listing)
        ids = assign_ids(cfg)
        assert sorted(ids.values()) == list(range(len(ids)))

    def test_entry_is_zero(self, any_listing):
        cfg = make_cfg(any_listing)
        assign_ids(cfg)
        assert cfg.entry.id == 0

    def test_ids_stored_on_blocks(self):
        cfg = make_cfg(IF_ELSE)
        ids = assign_ids(cfg)
        assert ids == {0: 0, 2: 1, 3: 2, 1: 3}
        assert [b.id for b in cfg] == [0, 3, 1, 2]
        assert cfg.block_ids is ids

    def test_unreachable_block_has_no_id(self):
        cfg = make_cfg(DEAD_CODE)
        assign_ids(cfg)
        assert cfg.blocks[1].id is None
        assert not cfg.blocks[1].is_reachable
        assert cfg.blocks[2].id == 1

    def test_label_only_block_is_numbered(self):
        cfg = make_cfg(LABEL_ONLY_BLOCK)
        assert assign_ids(cfg) == {0: 0, 2: 1, 1: 2, 3: 3}

    def test_second_call_is_stable(self):
        cfg = make_cfg(WHILE_LOOP)
        first = dict(assign_ids(cfg))
        assert assign_ids(cfg) == first

    def test_explicit_entry_numbers_from_entry(self):
        insns = parse_instructions(WHILE_LOOP)
        exit_marker = insns[8]
        cfg = build_cfg(insns, entry=exit_marker)
        ids = assign_ids(cfg)
        assert ids == {3: 0}
        assert cfg.blocks[0].id is None

    def test_same_input_same_ids(self, any_listing):
        a = assign_ids(make_cfg(any_listing))
        b = assign_ids(make_cfg(any_listing))
        assert a == b
