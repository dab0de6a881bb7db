# recanon/verification/data_models/validation_result.py
# ValidationResult data class produced by validate_bundle().

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating bundle text.

    is_empty and parse_error are states of their own; neither is folded into
    missing_fields. is_valid is True iff missing_fields is empty and the text
    was non-empty, parsable JSON.

    Fields:
      is_valid       -- No missing fields.
      is_empty       -- Input was empty or whitespace only.
      parse_error    -- JSON parser message, or None.
      missing_fields -- Human-readable names of missing/invalid fields, in
                        check order.
      mode           -- "static", "loop" or "unknown".
      warnings       -- Non-blocking observations.
      source_format  -- Bundle format the text was read as (see
                        recanon.version). Empty when not parsed.
    """
    is_valid:       bool
    is_empty:       bool
    parse_error:    Optional[str]
    missing_fields: tuple    # tuple of str, immutable
    mode:           str
    warnings:       tuple    # tuple of str, immutable
    source_format:  str = ""
