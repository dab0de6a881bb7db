# tests/unit/verification/test_hash_comparator.py
# Target: recanon/verification/hash_comparator.py

import pytest

from recanon.bundle.schema import Baseline
from recanon.verification.hash_comparator import (
    HashComparator,
    hashes_equal,
    normalize_hash,
    prefixed_hash,
)

HEX_A = "ab" * 32
HEX_B = "cd" * 32


class TestNormalizeHash:
    def test_strips_prefix_whitespace_and_case(self):
        assert normalize_hash("  SHA256:" + HEX_A.upper() + "\n") == HEX_A

    def test_none_is_empty(self):
        assert normalize_hash(None) == ""

    def test_idempotent(self):
        once = normalize_hash("sha256:" + HEX_A)
        assert normalize_hash(once) == once

    def test_prefix_only_removed_once(self):
        assert normalize_hash("sha256:sha256:" + HEX_A) == "sha256:" + HEX_A


class TestHashesEqual:
    def test_prefixed_equals_bare(self):
        assert hashes_equal("sha256:" + HEX_A, HEX_A) is True

    def test_case_insensitive(self):
        assert hashes_equal(HEX_A.upper(), HEX_A) is True

    def test_empty_never_equal(self):
        assert hashes_equal("", "") is False
        assert hashes_equal(None, None) is False
        assert hashes_equal(HEX_A, "") is False

    def test_no_prefix_matching(self):
        assert hashes_equal(HEX_A, HEX_A[:32]) is False


class TestPrefixedHash:
    def test_adds_prefix(self):
        assert prefixed_hash(HEX_A) == "sha256:" + HEX_A

    def test_keeps_single_prefix(self):
        assert prefixed_hash("SHA256:" + HEX_A) == "sha256:" + HEX_A

    def test_empty_stays_empty(self):
        assert prefixed_hash("") == ""
        assert prefixed_hash(None) == ""


class TestCompare:
    def setup_method(self):
        self.comparator = HashComparator()

    def test_static_pass(self):
        report = self.comparator.compare("static", Baseline(HEX_A), "sha256:" + HEX_A)
        assert report.passed is True
        assert report.poster_verified is True
        assert report.animation_verified is None
        assert report.mismatches == ()

    def test_static_fail_names_poster(self):
        report = self.comparator.compare("static", Baseline(HEX_A), HEX_B)
        assert report.passed is False
        assert report.mismatched_fields == ("posterHash",)
        assert report.mismatches[0].expected == HEX_A
        assert report.mismatches[0].computed == HEX_B

    def test_static_ignores_animation(self):
        report = self.comparator.compare("static", Baseline(HEX_A), HEX_A, HEX_B)
        assert report.passed is True
        assert report.notes == ("animation hash ignored in static mode",)

    def test_loop_both_match(self):
        report = self.comparator.compare("loop", Baseline(HEX_A, HEX_B), HEX_A, HEX_B)
        assert report.passed is True
        assert report.animation_verified is True

    def test_loop_animation_mismatch_alone_fails(self):
        report = self.comparator.compare("loop", Baseline(HEX_A, HEX_B), HEX_A, HEX_A)
        assert report.passed is False
        assert report.poster_verified is True
        assert report.animation_verified is False
        assert report.mismatched_fields == ("animationHash",)

    def test_loop_both_mismatch_reported_separately(self):
        report = self.comparator.compare("loop", Baseline(HEX_A, HEX_B), HEX_B, HEX_A)
        assert report.mismatched_fields == ("posterHash", "animationHash")

    def test_loop_missing_computed_animation_fails(self):
        report = self.comparator.compare("loop", Baseline(HEX_A, HEX_B), HEX_A, None)
        assert report.passed is False
        assert report.mismatches[0].computed == ""

    def test_empty_baseline_fails(self):
        assert self.comparator.compare("static", Baseline(), HEX_A).passed is False

    def test_unknown_mode_raises(self):
        with pytest.raises(ValueError):
            self.comparator.compare("unknown", Baseline(HEX_A), HEX_A)

    def test_describe(self):
        passed = self.comparator.compare("static", Baseline(HEX_A), HEX_A)
        failed = self.comparator.compare("static", Baseline(HEX_A), HEX_B)
        assert passed.describe() == "All required hashes match the sealed baseline."
        assert failed.describe().startswith("Hash mismatch -- posterHash: expected " + HEX_A)
