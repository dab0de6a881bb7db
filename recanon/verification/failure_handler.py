# recanon/verification/failure_handler.py
# FailureHandler -- turns exceptions and failed comparisons into FailureRecords.
#
# Classification is by exception type, never by parsing message text, with
# one exception: ProtocolViolationError carries the renderer's rule code and
# that code selects the remediation.
#
# Any exception that is not a RecanonError is INTERNAL_ERROR (exit code 4).
# A failed comparison is HASH_MISMATCH (exit code 1) and always names the
# mismatching hash(es).

from typing import Dict, Tuple

from recanon.verification.data_models.comparison_report import ComparisonReport
from recanon.verification.data_models.failure_record import FAILURE_TYPES, FailureRecord
from recanon.verification.errors import (
    AlreadySealedError,
    AuthRequiredError,
    BaselineMissingError,
    MalformedBundleError,
    MalformedResponseError,
    MissingFieldError,
    ModeFieldMismatchError,
    PersistenceValidationError,
    ProtocolViolationError,
    RecanonError,
    TransportError,
    UnsupportedBundleFormatError,
)

RATE_LIMIT_STATUS: int = 429

# Renderer rule code -> (title, remediation).
_PROTOCOL_RULES: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "INVALID_CODE": (
        "Sealing blocked",
        (
            "snapshot.code must be a non-empty string.",
            "Code must define setup() and draw() functions.",
        ),
    ),
    "PROTOCOL_VIOLATION": (
        "Sealing blocked",
        (
            "Canvas is fixed at 1950x2400. Remove createCanvas() from your code.",
        ),
    ),
    "LOOP_MODE_ERROR": (
        "Loop mode blocked",
        (
            "Loop mode requires execution.frames >= 2.",
            "Include a draw() function that handles animation.",
            "Both poster and animation hashes are required for loop mode.",
        ),
    ),
    "INVALID_REQUEST": (
        "Sealed execution blocked",
        (
            "Bundle must include a complete snapshot object.",
            "Required: snapshot.code, snapshot.seed, snapshot.vars.",
        ),
    ),
}
# The renderer reports canvas violations under either name.
_PROTOCOL_RULES["createCanvas"] = _PROTOCOL_RULES["PROTOCOL_VIOLATION"]

_GENERIC_REJECTION: Tuple[str, Tuple[str, ...]] = (
    "Sealed execution blocked",
    (
        "Check that the bundle JSON is properly formatted.",
        "Ensure all required snapshot fields are present.",
    ),
)


def _record(
    failure_type: str,
    title:        str,
    detail:       str,
    remediation:  Tuple[str, ...] = (),
    field_name:   str = "",
) -> FailureRecord:
    return FailureRecord(
        failure_type=failure_type,
        exit_code=FAILURE_TYPES.get(failure_type, FAILURE_TYPES["INTERNAL_ERROR"]),
        title=title,
        detail=detail,
        remediation=tuple(remediation),
        field_name=field_name,
    )


class FailureHandler:
    """
    Maps failures to display-ready records with exit codes.

    Methods:
      classify(exc)            -> FailureRecord
      for_mismatch(report)     -> FailureRecord
      summary(record)          -> str
    """

    def classify(self, exc: BaseException) -> FailureRecord:
        if not isinstance(exc, RecanonError):
            return _record(
                "INTERNAL_ERROR",
                "Internal error",
                f"{type(exc).__name__}: {exc}",
                ("Report this bundle and the message above.",),
            )

        detail = exc.message
        failure_type = exc.failure_type

        if isinstance(exc, BaselineMissingError):
            if exc.field_name.endswith("animationHash"):
                return _record(
                    failure_type, "Incomplete baseline", detail,
                    ("Loop mode needs both poster and animation hashes. Seal the baseline first.",),
                    exc.field_name,
                )
            return _record(
                failure_type, "No baseline yet", detail,
                ("Seal the snapshot first to capture the expected hash.",),
                exc.field_name,
            )
        if isinstance(exc, MissingFieldError):
            return _record(
                failure_type, "Bundle is missing required fields", detail,
                (
                    "Required: snapshot.code, snapshot.seed, snapshot.vars (10 numbers).",
                    "Include baseline.posterHash, plus baseline.animationHash in loop mode.",
                ),
                exc.field_name,
            )
        if isinstance(exc, AlreadySealedError):
            return _record(
                failure_type, "Already sealed", detail,
                ("Run a check instead; a sealed baseline never changes.",),
                exc.field_name,
            )
        if isinstance(exc, ModeFieldMismatchError):
            return _record(
                failure_type, "Check failed", detail,
                ("Loop mode needs both poster and animation hashes. Seal the baseline first.",),
                exc.field_name,
            )
        if isinstance(exc, UnsupportedBundleFormatError):
            return _record(
                failure_type, "Unsupported bundle format", detail,
                ("Only claim bundles and legacy verification bundles can be checked.",),
                exc.field_name,
            )
        if isinstance(exc, MalformedBundleError):
            return _record(
                failure_type, "Invalid JSON", detail,
                ("Paste the complete bundle JSON exactly as exported.",),
            )
        if isinstance(exc, TransportError):
            if exc.status_code == RATE_LIMIT_STATUS:
                return _record(
                    failure_type, "Rate limit exceeded", detail,
                    ("Wait a moment before checking again.",),
                )
            if exc.timed_out:
                return _record(
                    failure_type, "Execution timeout", detail,
                    (
                        "Simplify the execution code.",
                        "Reduce the number of frames for loop mode.",
                    ),
                )
            return _record(
                failure_type, "Renderer unreachable", detail,
                (
                    "Check your network connection and the configured renderer URL.",
                    "The renderer may be temporarily unavailable; try again shortly.",
                ),
            )
        if isinstance(exc, ProtocolViolationError):
            title, remediation = _PROTOCOL_RULES.get(exc.rule, _GENERIC_REJECTION)
            return _record(failure_type, title, detail, remediation)
        if isinstance(exc, MalformedResponseError):
            return _record(
                failure_type, "Unusable renderer response", detail,
                ("The renderer answered without the expected hashes; try again.",),
            )
        if isinstance(exc, AuthRequiredError):
            return _record(
                failure_type, "Sign in required", detail,
                ("Sign in, then save again. The seal does not need to be repeated.",),
            )
        if isinstance(exc, PersistenceValidationError):
            return _record(
                failure_type, "Save rejected", detail,
                ("Fix the claim fields named above, then save again.",),
                exc.field_name,
            )
        return _record(failure_type, "Error", detail)

    def for_mismatch(self, report: ComparisonReport) -> FailureRecord:
        if report.passed:
            raise ValueError("FailureHandler.for_mismatch: report passed; nothing to classify")
        return _record(
            "HASH_MISMATCH",
            "Verification failed",
            report.describe(),
            ("The snapshot no longer reproduces its sealed baseline.",),
            ", ".join(report.mismatched_fields),
        )

    def summary(self, record: FailureRecord) -> str:
        lines = [
            "CHECK RESULT:   FAIL",
            f"Failure type:   {record.failure_type}",
            f"Exit code:      {record.exit_code}",
            f"Title:          {record.title}",
            f"Field:          {record.field_name or '(not applicable)'}",
            f"Detail:         {record.detail[:200]}",
        ]
        for step in record.remediation:
            lines.append(f"  - {step}")
        return "\n".join(lines)
