# tests/unit/core/test_logging_layer.py
# Target: recanon/core/logging_layer.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from recanon.core.logging_layer import (
    CHECK_REQUESTED,
    STATE_CHANGE,
    EventFilter,
    EventLogger,
    LoggingError,
)

T0 = datetime(2026, 1, 20, 12, 0, 0, tzinfo=timezone.utc)


def _logger_with_events() -> EventLogger:
    logger = EventLogger()
    logger.log_event(CHECK_REQUESTED, {"generation": 1}, T0)
    logger.log_state_change("idle", "checking", T0 + timedelta(seconds=1))
    logger.log_state_change("checking", "verified", T0 + timedelta(seconds=2))
    return logger


class TestLogEvent:
    def test_returns_sequential_ids(self):
        logger = EventLogger()
        assert logger.log_event("A", {}, T0) == "EVT-0000000000000001"
        assert logger.log_event("A", {}, T0) == "EVT-0000000000000002"

    def test_empty_type_raises(self):
        with pytest.raises(LoggingError):
            EventLogger().log_event("", {}, T0)

    def test_none_timestamp_raises(self):
        with pytest.raises(LoggingError):
            EventLogger().log_event("A", {}, None)

    def test_non_datetime_timestamp_raises(self):
        with pytest.raises(LoggingError):
            EventLogger().log_event("A", {}, "2026-01-20")

    def test_non_dict_data_raises(self):
        with pytest.raises(LoggingError):
            EventLogger().log_event("A", ["x"], T0)

    def test_unserializable_payload_raises_and_is_not_stored(self):
        logger = EventLogger()
        with pytest.raises(LoggingError):
            logger.log_event("A", {"x": object()}, T0)
        assert logger.event_count() == 0

    def test_non_finite_floats_replaced(self):
        logger = EventLogger()
        logger.log_event("A", {"nan": float("nan"), "inf": [float("inf")]}, T0)
        event = logger.query_events(EventFilter())[0]
        assert event.data == {"nan": "NaN_DETECTED", "inf": ["Inf_DETECTED"]}


class TestStateChange:
    def test_records_from_and_to(self):
        logger = EventLogger()
        logger.log_state_change("idle", "checking", T0, {"event": "CheckRequested"})
        event = logger.query_events(EventFilter(event_type=STATE_CHANGE))[0]
        assert event.data == {"from": "idle", "to": "checking", "event": "CheckRequested"}

    def test_empty_state_name_raises(self):
        with pytest.raises(LoggingError):
            EventLogger().log_state_change("", "checking", T0)


class TestQueryEvents:
    def test_filter_by_type(self):
        events = _logger_with_events().query_events(EventFilter(event_type=STATE_CHANGE))
        assert [e.data["to"] for e in events] == ["checking", "verified"]

    def test_time_window_inclusive(self):
        events = _logger_with_events().query_events(
            EventFilter(start_time=T0 + timedelta(seconds=1), end_time=T0 + timedelta(seconds=1))
        )
        assert len(events) == 1

    def test_limit_keeps_oldest(self):
        events = _logger_with_events().query_events(EventFilter(limit=2))
        assert [e.type for e in events] == [CHECK_REQUESTED, STATE_CHANGE]

    def test_none_filter_raises(self):
        with pytest.raises(LoggingError):
            EventLogger().query_events(None)


class TestStreamAndIntegrity:
    def test_stream_from_start_time(self):
        logger = _logger_with_events()
        assert len(list(logger.get_event_stream(T0 + timedelta(seconds=2)))) == 1

    def test_stream_rejects_non_datetime(self):
        with pytest.raises(LoggingError):
            list(EventLogger().get_event_stream("now"))

    def test_chain_verifies(self):
        assert _logger_with_events().verify_integrity().valid is True

    def test_head_matches_last_event_hash(self):
        logger = _logger_with_events()
        last = logger.query_events(EventFilter())[-1]
        assert logger.chain_head() == last.hash

    def test_timestamps_do_not_affect_chain(self):
        a = EventLogger()
        b = EventLogger()
        a.log_event("A", {"x": 1}, T0)
        b.log_event("A", {"x": 1}, T0 + timedelta(days=3))
        assert a.chain_head() == b.chain_head()

    def test_export_chain_is_json(self):
        assert '"links"' in _logger_with_events().export_chain()
