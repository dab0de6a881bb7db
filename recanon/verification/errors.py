# =============================================================================
# recanon -- ERROR TAXONOMY
# File:   recanon/verification/errors.py
# =============================================================================
#
# EXCEPTION HIERARCHY
# -------------------
#   RecanonError(Exception)                          -- base; never raised directly
#     MalformedBundleError(RecanonError)             -- unparsable bundle text
#       UnsupportedBundleFormatError                 -- recognised but unreadable format
#     MissingFieldError(RecanonError)                -- structural validation failure
#       BaselineMissingError                         -- check requested without a baseline
#     AlreadySealedError(RecanonError)               -- seal requested for a sealed bundle
#     ModeFieldMismatchError(RecanonError)           -- loop mode lacks one of its two hashes
#     TransportError(RecanonError)                   -- network / unreachable / timeout / 429
#     ProtocolViolationError(RecanonError)           -- renderer rejected the snapshot
#     MalformedResponseError(RecanonError)           -- renderer answer unusable
#     AuthRequiredError(RecanonError)                -- store refused: not signed in
#     PersistenceValidationError(RecanonError)       -- store refused: record rejected
#
# A hash mismatch is NOT an exception. It is the "failed" outcome and is
# carried by ComparisonReport.
#
# Every exception carries failure_type, a key of FAILURE_TYPES in
# recanon.verification.data_models.failure_record.
# =============================================================================

from __future__ import annotations

from typing import Any, Optional


class RecanonError(Exception):
    """
    Base class for all recanon exceptions.

    Attributes:
        failure_type: Registry key (class attribute, overridden per subclass).
        field_name:   Offending field, or empty string.
        value:        Offending value, or None.
        message:      Non-empty, human-readable description.
    """

    failure_type: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message:    str,
        field_name: str = "",
        value:      Any = None,
    ) -> None:
        if not isinstance(message, str) or not message:
            raise ValueError(
                "RecanonError: message must be a non-empty string"
            )
        if not isinstance(field_name, str):
            raise ValueError(
                "RecanonError: field_name must be a string"
            )
        super().__init__(message)
        self.field_name: str = field_name
        self.value:      Any = value
        self.message:    str = message

    def __repr__(self) -> str:
        return (
            self.__class__.__name__
            + "(field_name=" + repr(self.field_name)
            + ", value=" + repr(self.value)
            + ", message=" + repr(self.message)
            + ")"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RecanonError):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.field_name == other.field_name
            and self.value == other.value
            and self.message == other.message
        )

    __hash__ = Exception.__hash__


# =============================================================================
# BUNDLE-SIDE ERRORS (never reach the network)
# =============================================================================

class MalformedBundleError(RecanonError):
    """Bundle text could not be parsed as JSON or lacks the bundle structure."""

    failure_type = "MALFORMED_JSON"


class UnsupportedBundleFormatError(MalformedBundleError):
    """Bundle belongs to a format generation that cannot be upgraded."""

    failure_type = "UNSUPPORTED_BUNDLE_FORMAT"

    def __init__(self, source_format: str) -> None:
        super().__init__(
            message="UnsupportedBundleFormatError: bundles of format '"
            + source_format
            + "' cannot be verified against the renderer.",
            field_name="bundleVersion",
            value=source_format,
        )


class MissingFieldError(RecanonError):
    """
    A required field is absent or structurally invalid.

    Message format:
        "MissingFieldError: required field '<field_name>' is missing or invalid."
    """

    failure_type = "MISSING_FIELD"

    def __init__(self, field_name: str, detail: str = "") -> None:
        if not field_name:
            raise ValueError(
                "MissingFieldError: field_name must be a non-empty string"
            )
        message = (
            "MissingFieldError: required field '"
            + field_name
            + "' is missing or invalid."
        )
        if detail:
            message += " " + detail
        super().__init__(message=message, field_name=field_name)


class BaselineMissingError(MissingFieldError):
    """Check against baseline requested before a baseline was sealed."""

    failure_type = "BASELINE_MISSING"

    def __init__(self, field_name: str = "baseline.posterHash") -> None:
        super().__init__(
            field_name,
            "No baseline yet: seal the snapshot first to capture the expected hash.",
        )


class AlreadySealedError(RecanonError):
    """A sealed bundle was submitted for sealing again. Seals are immutable."""

    failure_type = "ALREADY_SEALED"

    def __init__(self, poster_hash: str) -> None:
        super().__init__(
            message="AlreadySealedError: bundle is already sealed with poster hash "
            + (poster_hash or "(empty)")
            + "; snapshot and baseline cannot change.",
            field_name="baseline.posterHash",
            value=poster_hash,
        )


class ModeFieldMismatchError(RecanonError):
    """
    Loop mode is missing one of its two required hashes.

    Message format:
        "ModeFieldMismatchError: loop mode requires both poster and animation
         hashes; missing '<field_name>'."
    """

    failure_type = "MODE_FIELD_MISMATCH"

    def __init__(self, mode: str, field_name: str) -> None:
        message = (
            "ModeFieldMismatchError: "
            + mode
            + " mode requires both poster and animation hashes; missing '"
            + field_name
            + "'."
        )
        super().__init__(message=message, field_name=field_name, value=mode)


# =============================================================================
# RENDERER BOUNDARY ERRORS
# =============================================================================

class TransportError(RecanonError):
    """Network failure, timeout, rate limiting or an unexplained HTTP error."""

    failure_type = "TRANSPORT_ERROR"

    def __init__(
        self,
        message:     str,
        status_code: Optional[int] = None,
        timed_out:   bool = False,
    ) -> None:
        super().__init__(message=message, field_name="", value=status_code)
        self.status_code: Optional[int] = status_code
        self.timed_out:   bool = timed_out


class ProtocolViolationError(RecanonError):
    """
    The renderer refused the snapshot because it breaks an execution rule.

    rule is the renderer's error code when one could be identified
    (INVALID_CODE, PROTOCOL_VIOLATION, LOOP_MODE_ERROR, INVALID_REQUEST).
    """

    failure_type = "PROTOCOL_VIOLATION"

    def __init__(self, message: str, rule: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message=message, field_name="", value=rule or None)
        self.rule: str = rule
        self.status_code: Optional[int] = status_code


class MalformedResponseError(RecanonError):
    """Renderer answered with unparsable JSON or without a required hash."""

    failure_type = "MALFORMED_RESPONSE"


# =============================================================================
# PERSISTENCE ERRORS (after a successful seal; retryable without re-sealing)
# =============================================================================

class AuthRequiredError(RecanonError):
    failure_type = "AUTH_REQUIRED"

    def __init__(self, message: str = "AuthRequiredError: sign in to save sealed claims.") -> None:
        super().__init__(message=message)


class PersistenceValidationError(RecanonError):
    failure_type = "PERSISTENCE_VALIDATION"
