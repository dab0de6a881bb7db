# recanon/verification/hash_comparator.py
# HashComparator -- exact comparison of renderer hashes against a sealed baseline.
#
# Hashes are compared on their normalized form only: surrounding whitespace
# trimmed, an optional case-insensitive "sha256:" prefix removed, lowercased.
# No prefix matching, no truncation. An empty hash never equals anything,
# including another empty hash: an absent hash cannot verify.

from typing import List, Optional

from recanon.bundle.schema import Baseline, MODE_LOOP, MODE_STATIC
from recanon.verification.data_models.comparison_report import ComparisonReport, HashMismatch

HASH_PREFIX: str = "sha256:"

POSTER_FIELD: str = "posterHash"
ANIMATION_FIELD: str = "animationHash"


def normalize_hash(value: Optional[str]) -> str:
    """
    Canonical comparison form of a hash.

    Idempotent: normalize_hash(normalize_hash(h)) == normalize_hash(h).
    None normalizes to the empty string.
    """
    if value is None:
        return ""
    text = str(value).strip()
    if text[: len(HASH_PREFIX)].lower() == HASH_PREFIX:
        text = text[len(HASH_PREFIX):]
    return text.lower()


def hashes_equal(a: Optional[str], b: Optional[str]) -> bool:
    """Exact equality of normalized forms. False when either side is empty."""
    left = normalize_hash(a)
    right = normalize_hash(b)
    if not left or not right:
        return False
    return left == right


def prefixed_hash(value: Optional[str]) -> str:
    """Storage form: "sha256:<hex>". Empty stays empty."""
    bare = normalize_hash(value)
    return HASH_PREFIX + bare if bare else ""


class HashComparator:
    """
    Compares computed renderer hashes against a bundle baseline.

    Static mode checks the poster hash only. Loop mode checks poster and
    animation independently; both must match for the report to pass, and
    each failing hash yields its own HashMismatch.

    Method:
      compare(mode, baseline, computed_poster, computed_animation) -> ComparisonReport
    """

    def compare(
        self,
        mode:               str,
        baseline:           Baseline,
        computed_poster:    Optional[str],
        computed_animation: Optional[str] = None,
    ) -> ComparisonReport:
        if mode not in (MODE_STATIC, MODE_LOOP):
            raise ValueError(
                f"HashComparator: mode must be '{MODE_STATIC}' or '{MODE_LOOP}'; got {mode!r}"
            )

        mismatches: List[HashMismatch] = []
        notes: List[str] = []

        poster_verified = hashes_equal(baseline.poster_hash, computed_poster)
        if not poster_verified:
            mismatches.append(HashMismatch(
                field_name=POSTER_FIELD,
                expected=baseline.poster_hash or "",
                computed=computed_poster or "",
            ))

        animation_verified: Optional[bool] = None
        if mode == MODE_LOOP:
            animation_verified = hashes_equal(baseline.animation_hash, computed_animation)
            if not animation_verified:
                mismatches.append(HashMismatch(
                    field_name=ANIMATION_FIELD,
                    expected=baseline.animation_hash or "",
                    computed=computed_animation or "",
                ))
        elif computed_animation:
            notes.append("animation hash ignored in static mode")

        return ComparisonReport(
            passed=not mismatches,
            mode=mode,
            poster_verified=poster_verified,
            animation_verified=animation_verified,
            mismatches=tuple(mismatches),
            notes=tuple(notes),
        )
