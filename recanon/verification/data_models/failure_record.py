# recanon/verification/data_models/failure_record.py
# FailureRecord data class and failure type registry.

from dataclasses import dataclass


# ---------------------------------------------------------------------------
# FAILURE TYPE REGISTRY
# ---------------------------------------------------------------------------
# Exit code mapping used by recanon.verification.run_check:
#   Code 0 -- verified (not a failure; listed for completeness)
#   Code 1 -- HASH_MISMATCH (renderer answered, baseline disagrees)
#   Code 2 -- bundle problems caught before any network call
#   Code 3 -- renderer boundary failures
#   Code 4 -- internal errors
#   Code 5 -- persistence rejections after a successful seal

FAILURE_TYPES = {
    # Exit Code 1
    "HASH_MISMATCH":             1,
    # Exit Code 2
    "MALFORMED_JSON":            2,
    "MISSING_FIELD":             2,
    "MODE_FIELD_MISMATCH":       2,
    "BASELINE_MISSING":          2,
    "UNSUPPORTED_BUNDLE_FORMAT": 2,
    "ALREADY_SEALED":            2,
    # Exit Code 3
    "TRANSPORT_ERROR":           3,
    "PROTOCOL_VIOLATION":        3,
    "MALFORMED_RESPONSE":        3,
    # Exit Code 4
    "INTERNAL_ERROR":            4,
    # Exit Code 5
    "AUTH_REQUIRED":             5,
    "PERSISTENCE_VALIDATION":    5,
}

EXIT_VERIFIED: int = 0


@dataclass(frozen=True)
class FailureRecord:
    """
    Classified failure, ready for display.

    Fields:
      failure_type -- Key from FAILURE_TYPES.
      exit_code    -- FAILURE_TYPES[failure_type].
      title        -- Short headline ("No baseline yet", "Renderer unreachable").
      detail       -- Original error text.
      remediation  -- Tuple of concrete next steps. May be empty.
      field_name   -- Field involved, if any. Empty otherwise.
    """
    failure_type: str
    exit_code:    int
    title:        str
    detail:       str
    remediation:  tuple    # tuple of str, immutable
    field_name:   str = ""
