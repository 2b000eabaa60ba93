"""Tests for storage.py — expiry filtering, incremental merge, JSON writes."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone

import pytest

from storage import (
    build_metadata,
    filter_expired,
    is_expired,
    load_existing_coupons,
    merge_coupons,
    write_json,
)

TODAY = date(2025, 6, 15)


class TestExpiry:

    def test_past_date_expired(self, make_coupon):
        assert is_expired(make_coupon(validUntil="2025-06-14"), TODAY)

    def test_today_not_expired(self, make_coupon):
        assert not is_expired(make_coupon(validUntil="2025-06-15"), TODAY)

    def test_slash_format(self, make_coupon):
        assert is_expired(make_coupon(validUntil="2020/01/01"), TODAY)

    @pytest.mark.parametrize("value", ["", "   ", "長期有效", "2025-13-40", None])
    def test_unknown_expiry_is_kept(self, make_coupon, value):
        assert not is_expired(make_coupon(validUntil=value), TODAY)

    def test_filter_expired(self, make_coupon):
        coupons = [
            make_coupon(code="15000", validUntil="2020-01-01"),
            make_coupon(code="15001", validUntil=""),
            make_coupon(code="15002", validUntil="2099-12-31"),
        ]
        kept = filter_expired(coupons, TODAY)
        assert [c["code"] for c in kept] == ["15001", "15002"]


class TestMerge:

    def test_existing_first_then_new(self, make_coupon):
        existing = [make_coupon(code="24001"), make_coupon(code="24003")]
        new = [make_coupon(code="24002")]
        assert [c["code"] for c in merge_coupons(existing, new)] == ["24001", "24003", "24002"]

    def test_no_duplicate_codes(self, make_coupon):
        existing = [make_coupon(code="24001", title="old")]
        new = [make_coupon(code="24001", title="new"), make_coupon(code="24002")]
        merged = merge_coupons(existing, new)
        assert [c["code"] for c in merged] == ["24001", "24002"]
        assert merged[0]["title"] == "old"

    def test_repeated_merge_is_idempotent(self, make_coupon):
        prior = [
            make_coupon(code="15000", validUntil="2020-01-01"),
            make_coupon(code="15001"),
            make_coupon(code="15002", validUntil="2099-01-01"),
        ]
        new = [make_coupon(code="15010"), make_coupon(code="15011")]

        first = merge_coupons(filter_expired(prior, TODAY), new)
        second = merge_coupons(filter_expired(first, TODAY), new)

        for result in (first, second):
            codes = [c["code"] for c in result]
            assert len(codes) == len(set(codes))
            assert len(result) == 2 + 2
        assert first == second


class TestLoadExisting:

    def test_missing_file(self, tmp_path):
        assert load_existing_coupons(tmp_path / "coupons.json") == []

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "coupons.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_existing_coupons(path) == []

    def test_non_list_file(self, tmp_path):
        path = tmp_path / "coupons.json"
        path.write_text('{"code": "24001"}', encoding="utf-8")
        assert load_existing_coupons(path) == []

    def test_skips_records_without_code(self, tmp_path, make_coupon):
        path = tmp_path / "coupons.json"
        path.write_text(json.dumps([make_coupon(code="24001"), {"title": "x"}, "junk"]), encoding="utf-8")
        assert [c["code"] for c in load_existing_coupons(path)] == ["24001"]


class TestBuildMetadata:

    def test_fields(self):
        now = datetime(2025, 6, 15, 3, 0, tzinfo=timezone.utc)
        meta = build_metadata(
            total_coupons=12,
            scanned_ranges=["24000-24100"],
            new_coupons_found=2,
            existing_coupons=10,
            now=now,
        )
        assert meta == {
            "lastUpdated": "2025-06-15T03:00:00+00:00",
            "totalCoupons": 12,
            "scannedRanges": ["24000-24100"],
            "newCouponsFound": 2,
            "existingCoupons": 10,
        }


class TestWriteJson:

    def test_pretty_utf8_and_creates_dirs(self, tmp_path):
        path = tmp_path / "public" / "coupons.json"
        assert write_json(path, [{"title": "比薩"}]) is True
        text = path.read_text(encoding="utf-8")
        assert "比薩" in text
        assert '\n  {' in text
        assert json.loads(text) == [{"title": "比薩"}]

    def test_failure_is_logged_not_raised(self, tmp_path, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        with caplog.at_level("ERROR", logger="storage"):
            ok = write_json(blocker / "coupons.json", [{"code": "24001"}])
        assert ok is False
        assert "24001" in caplog.text
