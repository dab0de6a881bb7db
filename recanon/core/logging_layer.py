# recanon/core/logging_layer.py
# Event log for verification and seal cycles.
#
# Event-sourced, in-memory, hash-chained. Every state transition the Verifier
# takes, every rejected check and every discarded stale response is recorded
# here. Timestamps are caller-supplied. No file IO. No global mutable state.
#
# Canonical import:
#   from recanon.core.logging_layer import EventLogger, Event, EventFilter

# ===========================================================================
# SECTION 1 -- IMPORTS
# ===========================================================================

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from recanon.core.integrity_layer import (
    ChainVerificationResult,
    HashChain,
    IntegrityLayer,
)

# ===========================================================================
# SECTION 2 -- CONSTANTS
# ===========================================================================

# Logged in place of non-finite floats; the event itself is never dropped.
_NAN_SENTINEL: str = "NaN_DETECTED"
_INF_SENTINEL: str = "Inf_DETECTED"

_GENESIS_LABEL: str = "recanon verification event log"

# Event categories emitted by recanon.verification.verifier.
CHECK_REQUESTED: str = "CHECK_REQUESTED"
CHECK_REJECTED: str = "CHECK_REJECTED"
SEAL_REQUESTED: str = "SEAL_REQUESTED"
STATE_CHANGE: str = "STATE_CHANGE"
STALE_RESPONSE_DISCARDED: str = "STALE_RESPONSE_DISCARDED"
STALE_RENDER_WARNING: str = "STALE_RENDER_WARNING"
SAVE_REQUESTED: str = "SAVE_REQUESTED"

# ===========================================================================
# SECTION 3 -- DATACLASSES: Event, EventFilter
# ===========================================================================

@dataclass(frozen=True)
class Event:
    """
    Record of a single verification event.

    Fields
    ------
    id        : "EVT-" + zero-padded sequence number.
    type      : Category string (CHECK_REQUESTED, STATE_CHANGE, ...).
    timestamp : Caller-supplied datetime.
    data      : Sanitized payload; non-finite floats replaced with sentinels.
    hash      : current_hash of the event's link in the audit chain.
    """
    id: str
    type: str
    timestamp: datetime
    data: Dict[str, Any]
    hash: str


@dataclass
class EventFilter:
    """
    Filter for EventLogger.query_events(). Omitted fields apply no constraint.

    limit keeps the oldest matching events.
    """
    event_type: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    limit: Optional[int] = None


# ===========================================================================
# SECTION 4 -- INTERNAL HELPERS
# ===========================================================================

def _sanitize_value(value: Any) -> Any:
    if isinstance(value, float):
        if math.isnan(value):
            return _NAN_SENTINEL
        if math.isinf(value):
            return _INF_SENTINEL
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _sanitize_value(v) for k, v in value.items()}
    return value


def _make_event_id(counter: int) -> str:
    return "EVT-{:016d}".format(counter)


# ===========================================================================
# SECTION 5 -- EventLogger
# ===========================================================================

class EventLogger:
    """
    Event-sourced logger with a SHA-256 hash chain over every event.

    Each instance is independent. The chain covers event type and payload
    (timestamps are stored but excluded from hashing), so replaying the same
    verification sequence reproduces the same chain head.

    log_event() raises LoggingError instead of silently discarding an event.
    """

    def __init__(self) -> None:
        self._store: List[Event] = []
        self._integrity: IntegrityLayer = IntegrityLayer()
        self._chain: HashChain = self._integrity.init_hash_chain(_GENESIS_LABEL)

    def log_event(self, event_type: str, data: Dict[str, Any], timestamp: datetime) -> str:
        """
        Record one event and return its id.

        Raises
        ------
        LoggingError : empty event_type, missing/non-datetime timestamp, or a
                       payload that is not JSON-serializable.
        """
        if not event_type:
            raise LoggingError("event_type must be a non-empty string")
        if timestamp is None:
            raise LoggingError("timestamp must be caller-supplied; None is not permitted")
        if not isinstance(timestamp, datetime):
            raise LoggingError(
                "timestamp must be a datetime instance; got: {}".format(type(timestamp))
            )
        if not isinstance(data, dict):
            raise LoggingError("data must be a dict; got: {}".format(type(data)))

        sanitized: Dict[str, Any] = _sanitize_value(data)
        try:
            link = self._integrity.append_to_chain(self._chain, event_type, sanitized)
        except (TypeError, ValueError) as exc:
            raise LoggingError("event payload is not JSON-serializable: {}".format(exc)) from exc

        event = Event(
            id=_make_event_id(link.sequence),
            type=event_type,
            timestamp=timestamp,
            data=sanitized,
            hash=link.current_hash,
        )
        self._store.append(event)
        return event.id

    def log_state_change(
        self,
        previous_state: str,
        new_state: str,
        timestamp: datetime,
        detail: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Log a Verifier state transition (state names, e.g. "checking")."""
        if not previous_state or not new_state:
            raise LoggingError("state names must be non-empty strings")
        data: Dict[str, Any] = {"from": previous_state, "to": new_state}
        if detail:
            data.update(detail)
        return self.log_event(STATE_CHANGE, data, timestamp)

    def query_events(self, filter: EventFilter) -> List[Event]:
        """
        Events matching filter, oldest first.

        Applied in order: event_type, start_time (inclusive), end_time
        (inclusive), limit.
        """
        if filter is None:
            raise LoggingError("filter must not be None")

        results: List[Event] = []
        for event in self._store:
            if filter.event_type is not None and event.type != filter.event_type:
                continue
            if filter.start_time is not None and event.timestamp < filter.start_time:
                continue
            if filter.end_time is not None and event.timestamp > filter.end_time:
                continue
            results.append(event)

        if filter.limit is not None:
            results = results[: filter.limit]
        return results

    def get_event_stream(self, start_time: datetime) -> Iterator[Event]:
        if not isinstance(start_time, datetime):
            raise LoggingError(
                "start_time must be a datetime instance; got: {}".format(type(start_time))
            )
        for event in self._store:
            if event.timestamp >= start_time:
                yield event

    def event_count(self) -> int:
        return len(self._store)

    def chain_head(self) -> str:
        """Hash of the most recent event (genesis hash when empty)."""
        return self._chain.head

    def export_chain(self) -> str:
        return self._chain.to_json()

    def verify_integrity(self) -> ChainVerificationResult:
        return self._integrity.verify_chain(self._chain)


# ===========================================================================
# SECTION 6 -- EXCEPTIONS
# ===========================================================================

class LoggingError(Exception):
    """
    Raised by EventLogger when an invariant is violated.

    Never silently swallowed; callers handle it or let it propagate.
    """
