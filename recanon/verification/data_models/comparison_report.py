# recanon/verification/data_models/comparison_report.py
# ComparisonReport data class produced by HashComparator.

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class HashMismatch:
    """
    Record of a single hash that did not match its baseline.
    """
    field_name: str    # "posterHash" or "animationHash"
    expected:   str    # baseline value as stored in the bundle
    computed:   str    # value returned by the renderer


@dataclass(frozen=True)
class ComparisonReport:
    """
    Result of comparing renderer output against a bundle baseline.

    Fields:
      passed             -- True iff every hash required by mode matched.
      mode               -- "static" or "loop".
      poster_verified    -- Poster (static image) comparison outcome.
      animation_verified -- Animation comparison outcome; None in static mode.
      mismatches         -- One HashMismatch per failing hash. Empty on pass.
      notes              -- Informational, non-failure notes.
    """
    passed:             bool
    mode:               str
    poster_verified:    bool
    animation_verified: Optional[bool]
    mismatches:         tuple    # tuple of HashMismatch, immutable
    notes:              tuple    # tuple of str, immutable

    @property
    def mismatched_fields(self) -> Tuple[str, ...]:
        return tuple(m.field_name for m in self.mismatches)

    def describe(self) -> str:
        if self.passed:
            return "All required hashes match the sealed baseline."
        parts = [
            f"{m.field_name}: expected {m.expected or '(empty)'}, computed {m.computed or '(empty)'}"
            for m in self.mismatches
        ]
        return "Hash mismatch -- " + "; ".join(parts)
