"""Tests for readings, outcomes and ingestion metrics."""

from dataclasses import FrozenInstanceError

import pytest

from currentcost_bridge.shared.result import IngestMetrics, MessageOutcome, PowerReading


class TestPowerReading:
    """Test the typed reading."""

    def test_optional_metadata_defaults(self):
        reading = PowerReading(total=100, hot_water=20, solar=5)

        assert reading.time is None
        assert reading.temperature is None

    def test_reading_is_immutable(self):
        reading = PowerReading(total=100, hot_water=20, solar=5)
        with pytest.raises(FrozenInstanceError):
            reading.total = 0  # type: ignore[misc]


class TestIngestMetrics:
    """Test metric bookkeeping."""

    def test_record_outcomes(self):
        metrics = IngestMetrics()

        metrics.record_outcome(MessageOutcome.FORWARDED)
        metrics.record_outcome(MessageOutcome.FORWARDED)
        metrics.record_outcome(MessageOutcome.SINK_FAILED)
        metrics.record_outcome(MessageOutcome.SKIPPED)

        assert metrics.messages_parsed == 3
        assert metrics.messages_forwarded == 2
        assert metrics.sink_failures == 1
        assert metrics.messages_skipped == 1
        assert metrics.messages_seen == 4
        assert metrics.skip_rate == 0.25

    def test_skip_rate_without_messages(self):
        assert IngestMetrics().skip_rate == 0.0

    def test_uptime_is_non_negative(self):
        assert IngestMetrics().uptime_s >= 0.0

    def test_to_dict(self):
        metrics = IngestMetrics(messages_skipped=1, messages_parsed=2, session_restarts=3)

        snapshot = metrics.to_dict()

        assert snapshot["session_restarts"] == 3
        assert snapshot["skip_rate"] == round(1 / 3, 4)
        assert "started_at" not in snapshot

    def test_to_dict_includes_link_health(self):
        snapshot = IngestMetrics(markup_recoveries=2, replacement_chars=5).to_dict()

        assert snapshot["markup_recoveries"] == 2
        assert snapshot["replacement_chars"] == 5
