"""Tests for block segmentation (block_gap_threshold, group_blocks)."""

import random

from conftest import make_line, make_token
from pagelayout.config import LayoutConfig
from pagelayout.grouping import block_gap_threshold, build_lines, group_blocks


class TestGapThreshold:
    def test_floor_applies_to_small_fonts(self, default_cfg):
        assert block_gap_threshold(make_line(0, [(0, "a")], 10), default_cfg) == 20

    def test_font_relative_for_large_fonts(self, default_cfg):
        assert block_gap_threshold(make_line(0, [(0, "a")], 20), default_cfg) == 30


class TestGroupBlocks:
    def test_empty(self, default_cfg):
        assert group_blocks([], default_cfg) == []

    def test_single_line(self, default_cfg):
        ln = make_line(10, [(0, "a")])
        assert group_blocks([ln], default_cfg) == [[ln]]

    def test_gap_equal_to_threshold_merges(self, default_cfg):
        lines = [make_line(100, [(0, "a")]), make_line(120, [(0, "b")])]
        assert len(group_blocks(lines, default_cfg)) == 1

    def test_gap_above_threshold_splits(self, default_cfg):
        lines = [make_line(100, [(0, "a")]), make_line(125, [(0, "b")])]
        assert len(group_blocks(lines, default_cfg)) == 2

    def test_uses_incoming_line_font(self, default_cfg):
        # Gap 25: small previous font but a 20pt incoming line → threshold 30
        lines = [make_line(100, [(0, "a")], 8), make_line(125, [(0, "B")], 20)]
        assert len(group_blocks(lines, default_cfg)) == 1

    def test_custom_floor(self):
        cfg = LayoutConfig(block_gap_floor=10)
        lines = [make_line(100, [(0, "a")], 4), make_line(112, [(0, "b")], 4)]
        assert len(group_blocks(lines, cfg)) == 2

    def test_partition_property(self, default_cfg):
        rng = random.Random(11)
        toks = [
            make_token(f"w{i}", rng.uniform(0, 400), rng.uniform(0, 1000), rng.choice([8, 10, 12, 18]))
            for i in range(150)
        ]
        lines = build_lines(toks, default_cfg)
        runs = group_blocks(lines, default_cfg)
        flat = [ln for run in runs for ln in run]
        assert flat == lines
        assert all(run for run in runs)
