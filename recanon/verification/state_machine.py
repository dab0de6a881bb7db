# =============================================================================
# recanon -- VERIFICATION STATE MACHINE
# File:   recanon/verification/state_machine.py
# =============================================================================
#
# PURPOSE
# -------
# Pure reducer: transition(state, event) -> state. No IO, no clock, no
# network. The Verifier feeds it events and performs the side effects.
#
# STATES
# ------
#   Idle
#   Checking            one render in flight, tagged with its generation
#   Verified            every mode-required hash matched (or was sealed)
#   Failed              renderer answered, at least one hash disagreed
#   Error               rejected before the network, or the call failed
#   Saving              sealed result being persisted
#   Saved
#   AuthRequired        store refused: not signed in
#   ValidationRejected  store refused the record ("validation_error")
#
# TRANSITIONS
# -----------
#   idle | terminal      --CheckRequested/SealRequested-->  checking
#   idle | terminal      --CheckRejected-->                  error
#   checking (same gen)  --RenderCompared-->                 verified | failed
#   checking (same gen)  --RenderSealed-->                   verified
#   checking (same gen)  --RenderErrored-->                  error
#   verified (sealed) | auth_required | validation_error
#                        --SaveRequested-->                  saving
#   saving               --SaveSucceeded-->                  saved
#   saving               --SaveAuthRequired-->               auth_required
#   saving               --SaveRejected-->                   validation_error
#
# Any other (state, event) pair leaves the state unchanged. In particular a
# render response whose generation is not the in-flight one is discarded.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from recanon.bundle.schema import Baseline
from recanon.verification.data_models.comparison_report import ComparisonReport
from recanon.verification.data_models.failure_record import FailureRecord

PURPOSE_CHECK: str = "check"
PURPOSE_SEAL: str = "seal"


# =============================================================================
# SECTION 1 -- STATES
# =============================================================================

@dataclass(frozen=True)
class Idle:
    name: ClassVar[str] = "idle"


@dataclass(frozen=True)
class Checking:
    name: ClassVar[str] = "checking"
    generation: int
    mode:       str
    purpose:    str = PURPOSE_CHECK


@dataclass(frozen=True)
class Verified:
    """
    report is None for a seal (there was no baseline to compare against);
    baseline is the newly sealed baseline, or the one that was checked.
    """
    name: ClassVar[str] = "verified"
    generation: int
    mode:       str
    baseline:   Baseline
    report:     Optional[ComparisonReport] = None
    sealed:     bool = False


@dataclass(frozen=True)
class Failed:
    name: ClassVar[str] = "failed"
    generation: int
    report:     ComparisonReport
    failure:    FailureRecord


@dataclass(frozen=True)
class Error:
    name: ClassVar[str] = "error"
    failure:    FailureRecord
    generation: Optional[int] = None


@dataclass(frozen=True)
class Saving:
    name: ClassVar[str] = "saving"
    verified: Verified


@dataclass(frozen=True)
class Saved:
    name: ClassVar[str] = "saved"
    verified: Verified
    claim_id: str


@dataclass(frozen=True)
class AuthRequired:
    name: ClassVar[str] = "auth_required"
    verified: Verified
    failure:  FailureRecord


@dataclass(frozen=True)
class ValidationRejected:
    name: ClassVar[str] = "validation_error"
    verified: Verified
    failure:  FailureRecord


State = Union[
    Idle, Checking, Verified, Failed, Error,
    Saving, Saved, AuthRequired, ValidationRejected,
]

_RESTARTABLE = (Idle, Verified, Failed, Error, Saved, AuthRequired, ValidationRejected)


def is_terminal(state: State) -> bool:
    return isinstance(state, _RESTARTABLE) and not isinstance(state, Idle)


def is_busy(state: State) -> bool:
    return isinstance(state, (Checking, Saving))


# =============================================================================
# SECTION 2 -- EVENTS
# =============================================================================

@dataclass(frozen=True)
class CheckRequested:
    generation: int
    mode:       str


@dataclass(frozen=True)
class SealRequested:
    generation: int
    mode:       str


@dataclass(frozen=True)
class CheckRejected:
    failure: FailureRecord


@dataclass(frozen=True)
class RenderCompared:
    generation: int
    baseline:   Baseline
    report:     ComparisonReport
    failure:    Optional[FailureRecord] = None   # required when report failed


@dataclass(frozen=True)
class RenderSealed:
    generation: int
    baseline:   Baseline


@dataclass(frozen=True)
class RenderErrored:
    generation: int
    failure:    FailureRecord


@dataclass(frozen=True)
class SaveRequested:
    pass


@dataclass(frozen=True)
class SaveSucceeded:
    claim_id: str


@dataclass(frozen=True)
class SaveAuthRequired:
    failure: FailureRecord


@dataclass(frozen=True)
class SaveRejected:
    failure: FailureRecord


Event = Union[
    CheckRequested, SealRequested, CheckRejected,
    RenderCompared, RenderSealed, RenderErrored,
    SaveRequested, SaveSucceeded, SaveAuthRequired, SaveRejected,
]

_RESPONSES = (RenderCompared, RenderSealed, RenderErrored)


def is_stale(state: State, event: Event) -> bool:
    """True for a render response that does not belong to the in-flight check."""
    if not isinstance(event, _RESPONSES):
        return False
    return not isinstance(state, Checking) or state.generation != event.generation


# =============================================================================
# SECTION 3 -- REDUCER
# =============================================================================

def transition(state: State, event: Event) -> State:
    """
    Next state for (state, event). Pure and total: an event that does not
    apply to the current state returns the state unchanged.
    """
    if isinstance(event, (CheckRequested, SealRequested)):
        if not isinstance(state, _RESTARTABLE):
            return state
        purpose = PURPOSE_SEAL if isinstance(event, SealRequested) else PURPOSE_CHECK
        return Checking(generation=event.generation, mode=event.mode, purpose=purpose)

    if isinstance(event, CheckRejected):
        if not isinstance(state, _RESTARTABLE):
            return state
        return Error(failure=event.failure)

    if isinstance(event, _RESPONSES):
        if is_stale(state, event):
            return state
        if isinstance(event, RenderErrored):
            return Error(failure=event.failure, generation=event.generation)
        if isinstance(event, RenderSealed):
            if state.purpose != PURPOSE_SEAL:
                return state
            return Verified(
                generation=event.generation,
                mode=state.mode,
                baseline=event.baseline,
                sealed=True,
            )
        if state.purpose != PURPOSE_CHECK:
            return state
        if event.report.passed:
            return Verified(
                generation=event.generation,
                mode=state.mode,
                baseline=event.baseline,
                report=event.report,
            )
        if event.failure is None:
            raise ValueError("RenderCompared: a failed report must carry its FailureRecord")
        return Failed(generation=event.generation, report=event.report, failure=event.failure)

    if isinstance(event, SaveRequested):
        if isinstance(state, Verified) and state.sealed:
            return Saving(verified=state)
        if isinstance(state, (AuthRequired, ValidationRejected)):
            return Saving(verified=state.verified)
        return state

    if isinstance(state, Saving):
        if isinstance(event, SaveSucceeded):
            return Saved(verified=state.verified, claim_id=event.claim_id)
        if isinstance(event, SaveAuthRequired):
            return AuthRequired(verified=state.verified, failure=event.failure)
        if isinstance(event, SaveRejected):
            return ValidationRejected(verified=state.verified, failure=event.failure)
    return state
