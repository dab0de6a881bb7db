# =============================================================================
# recanon -- VERIFIER
# File:   recanon/verification/verifier.py
# =============================================================================
#
# Orchestrates check, seal and save cycles. The Verifier owns exactly one
# state of the reducer in recanon.verification.state_machine, performs the
# side effects the reducer cannot (renderer calls, store writes), and logs
# every transition to its EventLogger.
#
# CYCLES
# ------
#   check_bundle(text)                      validate -> parse -> check
#   check_against_baseline(snapshot, base)  baseline gate -> /verify -> compare
#   seal(snapshot)                          preflight -> /render -> baseline
#   seal_bundle(bundle)                     submission gate -> seal -> sealed bundle
#   save(bundle)                            store.save -> saved | auth | rejected
#
# Nothing that fails validation reaches the renderer. Any failure raised by
# the renderer client or the store is caught at the call boundary, classified
# by FailureHandler and ends the cycle, so the Verifier never stays busy.
# Errors raised before a cycle starts propagate.
#
# IN-FLIGHT GUARD
# ---------------
# While a cycle is in flight (checking or saving) a new request is refused:
# the state is returned unchanged and CHECK_REJECTED is logged.
# =============================================================================

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from recanon.bundle.codec import parse_bundle
from recanon.bundle.schema import (
    Baseline,
    CHECK_RESULT_FAILED,
    CHECK_RESULT_VERIFIED,
    ClaimBundle,
    MODE_LOOP,
    Snapshot,
    submission_problems,
)
from recanon.client.renderer_client import RendererClient
from recanon.core.logging_layer import (
    CHECK_REJECTED,
    CHECK_REQUESTED,
    EventLogger,
    SAVE_REQUESTED,
    SEAL_REQUESTED,
    STALE_RENDER_WARNING,
    STALE_RESPONSE_DISCARDED,
)
from recanon.storage.claim_store import ClaimStore
from recanon.verification import state_machine as sm
from recanon.verification.bundle_validator import validate_bundle
from recanon.verification.code_preflight import validate_no_create_canvas
from recanon.verification.data_models.failure_record import FailureRecord
from recanon.verification.errors import (
    AlreadySealedError,
    AuthRequiredError,
    BaselineMissingError,
    MalformedBundleError,
    MissingFieldError,
    ModeFieldMismatchError,
    PersistenceValidationError,
    ProtocolViolationError,
    RecanonError,
)
from recanon.verification.failure_handler import FailureHandler
from recanon.verification.fingerprint import detect_stale_render, fingerprint_snapshot
from recanon.verification.hash_comparator import ANIMATION_FIELD, HashComparator


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Verifier:
    """
    Drives the verification state machine for one control.

    Args:
        client:  Renderer client. The only path to the network.
        store:   Sealed-claim store; required only for save().
        logger:  Event log. A private EventLogger is created when omitted.
        clock:   Zero-argument callable returning an aware datetime.
        handler: FailureHandler used to classify failures.
    """

    def __init__(
        self,
        client:  RendererClient,
        store:   Optional[ClaimStore] = None,
        logger:  Optional[EventLogger] = None,
        clock:   Callable[[], datetime] = _utc_now,
        handler: Optional[FailureHandler] = None,
    ) -> None:
        self._client = client
        self._store = store
        self._logger = logger if logger is not None else EventLogger()
        self._clock = clock
        self._handler = handler if handler is not None else FailureHandler()
        self._comparator = HashComparator()

        self._state: sm.State = sm.Idle()
        self._generation: int = 0
        self._warnings: List[str] = []
        self._last_fingerprint: Optional[str] = None
        self._last_poster_hash: Optional[str] = None

        self.sealed_bundle: Optional[ClaimBundle] = None
        self.checked_bundle: Optional[ClaimBundle] = None

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def state(self) -> sm.State:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def warnings(self) -> Tuple[str, ...]:
        """Non-blocking observations from the most recent cycle."""
        return tuple(self._warnings)

    @property
    def logger(self) -> EventLogger:
        return self._logger

    # -------------------------------------------------------------------------
    # Reducer plumbing
    # -------------------------------------------------------------------------

    def dispatch(self, event: sm.Event) -> sm.State:
        """
        Apply one event. Stale render responses are logged and discarded;
        every actual transition is logged as a state change.
        """
        previous = self._state
        if sm.is_stale(previous, event):
            self._logger.log_event(
                STALE_RESPONSE_DISCARDED,
                {
                    "event": type(event).__name__,
                    "generation": event.generation,
                    "state": previous.name,
                    "in_flight": getattr(previous, "generation", None),
                },
                self._clock(),
            )
            return previous
        new_state = sm.transition(previous, event)
        if new_state is not previous:
            detail = {"event": type(event).__name__}
            failure = getattr(new_state, "failure", None)
            if failure is not None:
                detail["failure_type"] = failure.failure_type
            self._logger.log_state_change(previous.name, new_state.name, self._clock(), detail)
        self._state = new_state
        return new_state

    def _refuse_if_busy(self, request: str) -> bool:
        if not sm.is_busy(self._state):
            return False
        self._logger.log_event(
            CHECK_REJECTED,
            {"request": request, "reason": "a cycle is already in flight", "state": self._state.name},
            self._clock(),
        )
        return True

    def _reject(self, failure: FailureRecord, detail: Optional[dict] = None) -> sm.State:
        data = {"failure_type": failure.failure_type, "field_name": failure.field_name}
        if detail:
            data.update(detail)
        self._logger.log_event(CHECK_REJECTED, data, self._clock())
        return self.dispatch(sm.CheckRejected(failure=failure))

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _note_render(self, snapshot: Snapshot, poster_hash: str) -> None:
        fingerprint = fingerprint_snapshot(snapshot)
        warning = detect_stale_render(
            self._last_fingerprint, self._last_poster_hash, fingerprint, poster_hash
        )
        if warning:
            self._warnings.append(warning)
            self._logger.log_event(
                STALE_RENDER_WARNING,
                {"fingerprint": fingerprint, "poster_hash": poster_hash},
                self._clock(),
            )
        self._last_fingerprint = fingerprint
        self._last_poster_hash = poster_hash

    # -------------------------------------------------------------------------
    # Check cycles
    # -------------------------------------------------------------------------

    def check_bundle(self, bundle_text: str) -> sm.State:
        """
        Validate bundle text and, when it is structurally sound, check it
        against its own baseline. Invalid bundles go straight to error.
        """
        if self._refuse_if_busy("check_bundle"):
            return self._state
        self._warnings = []
        self.checked_bundle = None

        validation = validate_bundle(bundle_text)
        self._warnings.extend(validation.warnings)
        if validation.is_empty:
            return self._reject(self._handler.classify(
                MalformedBundleError("MalformedBundleError: bundle text is empty.")
            ))
        if validation.parse_error is not None:
            return self._reject(self._handler.classify(
                MalformedBundleError("MalformedBundleError: " + validation.parse_error)
            ))
        if not validation.is_valid:
            first = validation.missing_fields[0]
            if first.startswith("baseline."):
                exc: RecanonError = BaselineMissingError(first.split(" ")[0])
            else:
                exc = MissingFieldError(first.split(" ")[0])
            return self._reject(
                self._handler.classify(exc),
                {"missing_fields": list(validation.missing_fields)},
            )

        try:
            bundle = parse_bundle(bundle_text)
        except RecanonError as exc:
            return self._reject(self._handler.classify(exc))

        state = self._check(bundle.snapshot, bundle.baseline)
        if isinstance(state, sm.Verified):
            self.checked_bundle = bundle.with_check_result(
                CHECK_RESULT_VERIFIED, self._clock().isoformat()
            )
        elif isinstance(state, sm.Failed):
            self.checked_bundle = bundle.with_check_result(
                CHECK_RESULT_FAILED, self._clock().isoformat()
            )
        return state

    def check_against_baseline(self, snapshot: Snapshot, baseline: Baseline) -> sm.State:
        """
        Re-render snapshot and compare with baseline. A missing or incomplete
        baseline is rejected without a network call.
        """
        if self._refuse_if_busy("check_against_baseline"):
            return self._state
        self._warnings = []
        return self._check(snapshot, baseline)

    def _check(self, snapshot: Snapshot, baseline: Baseline) -> sm.State:
        mode = snapshot.mode
        if not baseline.poster_hash:
            return self._reject(self._handler.classify(BaselineMissingError()))
        if mode == MODE_LOOP and not baseline.animation_hash:
            return self._reject(self._handler.classify(
                BaselineMissingError("baseline.animationHash")
            ))

        generation = self._next_generation()
        self._logger.log_event(
            CHECK_REQUESTED,
            {"generation": generation, "mode": mode, "fingerprint": fingerprint_snapshot(snapshot)},
            self._clock(),
        )
        self.dispatch(sm.CheckRequested(generation=generation, mode=mode))

        try:
            if mode == MODE_LOOP:
                result = self._client.verify_loop(
                    snapshot, baseline.poster_hash, baseline.animation_hash
                )
                if not result.computed_animation_hash:
                    raise ModeFieldMismatchError(mode, ANIMATION_FIELD)
            else:
                result = self._client.verify_static(snapshot, baseline.poster_hash)
        except Exception as exc:  # noqa: BLE001
            return self.dispatch(sm.RenderErrored(
                generation=generation, failure=self._handler.classify(exc)
            ))

        self._note_render(snapshot, result.computed_poster_hash)
        report = self._comparator.compare(
            mode, baseline, result.computed_poster_hash, result.computed_animation_hash
        )
        failure = None if report.passed else self._handler.for_mismatch(report)
        return self.dispatch(sm.RenderCompared(
            generation=generation, baseline=baseline, report=report, failure=failure
        ))

    # -------------------------------------------------------------------------
    # Seal cycles
    # -------------------------------------------------------------------------

    def seal(self, snapshot: Snapshot) -> sm.State:
        """
        Render snapshot and capture its baseline. On success the state is
        Verified with sealed=True and the new baseline.
        """
        if self._refuse_if_busy("seal"):
            return self._state
        self._warnings = []
        return self._seal(snapshot)

    def _seal(self, snapshot: Snapshot) -> sm.State:
        if not snapshot.code.strip():
            return self._reject(self._handler.classify(MissingFieldError("snapshot.code")))
        canvas = validate_no_create_canvas(snapshot.code)
        if not canvas.valid:
            return self._reject(self._handler.classify(ProtocolViolationError(
                f"ProtocolViolationError: createCanvas() found on line {canvas.line_number}: "
                f"{canvas.line_content}",
                rule="createCanvas",
            )))
        violations = snapshot.invariant_violations()
        if violations:
            return self._reject(
                self._handler.classify(
                    MissingFieldError("snapshot.execution", "; ".join(violations))
                ),
                {"violations": violations},
            )

        mode = snapshot.mode
        generation = self._next_generation()
        self._logger.log_event(
            SEAL_REQUESTED,
            {"generation": generation, "mode": mode, "fingerprint": fingerprint_snapshot(snapshot)},
            self._clock(),
        )
        self.dispatch(sm.SealRequested(generation=generation, mode=mode))

        try:
            result = self._client.render(snapshot)
            if mode == MODE_LOOP and not result.animation_hash:
                raise ModeFieldMismatchError(mode, ANIMATION_FIELD)
        except Exception as exc:  # noqa: BLE001
            return self.dispatch(sm.RenderErrored(
                generation=generation, failure=self._handler.classify(exc)
            ))

        self._note_render(snapshot, result.poster_hash)
        baseline = Baseline(
            poster_hash=result.poster_hash,
            animation_hash=result.animation_hash if mode == MODE_LOOP else None,
        )
        return self.dispatch(sm.RenderSealed(generation=generation, baseline=baseline))

    def seal_bundle(self, bundle: ClaimBundle) -> sm.State:
        """
        Seal a draft claim bundle. The sealed bundle is left in
        self.sealed_bundle for save().
        """
        if self._refuse_if_busy("seal_bundle"):
            return self._state
        self._warnings = []
        self.sealed_bundle = None

        if bundle.is_sealed:
            return self._reject(self._handler.classify(
                AlreadySealedError(bundle.baseline.poster_hash)
            ))
        problems = submission_problems(bundle)
        if problems:
            return self._reject(
                self._handler.classify(MissingFieldError(problems[0].split(" ")[0].rstrip(":"))),
                {"problems": problems},
            )

        state = self._seal(bundle.snapshot)
        if isinstance(state, sm.Verified) and state.sealed:
            self.sealed_bundle = bundle.with_baseline(state.baseline, self._clock().isoformat())
        return state

    # -------------------------------------------------------------------------
    # Save cycle
    # -------------------------------------------------------------------------

    def save(self, bundle: Optional[ClaimBundle] = None) -> sm.State:
        """
        Persist the most recently sealed bundle (or the one given). Only
        allowed after a seal, or to retry after auth_required /
        validation_error; otherwise the state is returned unchanged.
        """
        if self._store is None:
            raise ValueError("Verifier.save: no ClaimStore was configured")
        target = bundle if bundle is not None else self.sealed_bundle
        if target is None:
            raise ValueError("Verifier.save: nothing sealed to save")
        if self._refuse_if_busy("save"):
            return self._state

        self._logger.log_event(
            SAVE_REQUESTED,
            {"poster_hash": target.baseline.poster_hash, "state": self._state.name},
            self._clock(),
        )
        state = self.dispatch(sm.SaveRequested())
        if not isinstance(state, sm.Saving):
            return state

        try:
            result = self._store.save(target, self._clock().isoformat())
        except AuthRequiredError as exc:
            return self.dispatch(sm.SaveAuthRequired(failure=self._handler.classify(exc)))
        except PersistenceValidationError as exc:
            return self.dispatch(sm.SaveRejected(failure=self._handler.classify(exc)))
        except Exception as exc:  # noqa: BLE001
            return self.dispatch(sm.SaveRejected(failure=self._handler.classify(exc)))
        return self.dispatch(sm.SaveSucceeded(claim_id=result.id))
