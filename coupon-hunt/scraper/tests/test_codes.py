"""Tests for codes.py — candidate code generation from CLI tokens."""

from __future__ import annotations

import pytest

from codes import parse_code_args


class TestParseCodeArgs:

    @pytest.mark.parametrize("start,end", [(15000, 15002), (0, 0), (99990, 99999), (7, 12)])
    def test_range_is_inclusive_padded_and_ascending(self, start, end):
        codes = parse_code_args([f"{start}-{end}"])
        assert len(codes) == end - start + 1
        assert all(len(c) == 5 for c in codes)
        assert [int(c) for c in codes] == list(range(start, end + 1))

    def test_single_values_are_padded(self):
        assert parse_code_args(["7", "24001"]) == ["00007", "24001"]

    def test_input_order_preserved_and_overlaps_kept(self):
        codes = parse_code_args(["24002-24003", "24001", "24003-24004"])
        assert codes == ["24002", "24003", "24001", "24003", "24004"]

    @pytest.mark.parametrize("token", [
        "abc",
        "24005-24001",
        "24001-",
        "-24001",
        "1-2-3",
        "12a-15",
        "",
        "3.5",
    ])
    def test_malformed_tokens_contribute_nothing(self, token):
        assert parse_code_args([token]) == []

    def test_malformed_tokens_do_not_affect_valid_ones(self):
        assert parse_code_args(["oops", "15000-15001", "9-1"]) == ["15000", "15001"]

    def test_empty_input(self):
        assert parse_code_args([]) == []
