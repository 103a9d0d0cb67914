"""
Unit tests for event sinks.
"""
import io
import json
import logging
from datetime import datetime, timezone

import pytest

from meraki_collector.correlation.event import Event
from meraki_collector.output.sinks import JsonLinesSink, LoggingSink, MemorySink


@pytest.fixture
def event():
    return Event(
        timestamp=datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc),
        organization_id="org1",
        metricset="device_status",
        fields={"device.serial": "S1", "device.tags": ["a"]},
    )


class TestJsonLinesSink:
    """Test JSON lines output."""

    @pytest.mark.asyncio
    async def test_one_line_per_event(self, event):
        stream = io.StringIO()
        sink = JsonLinesSink(stream)

        await sink.emit(event)
        await sink.emit(event)

        lines = stream.getvalue().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0]) == {
            "@timestamp": "2024-03-01T12:00:00+00:00",
            "organization_id": "org1",
            "metricset": "device_status",
            "device.serial": "S1",
            "device.tags": ["a"],
        }
        assert sink.get_stats() == {"written": 2}


class TestLoggingSink:
    """Test debug log output."""

    @pytest.mark.asyncio
    async def test_logs_event(self, event, caplog):
        with caplog.at_level(logging.DEBUG, logger="meraki_collector.output.sinks"):
            await LoggingSink().emit(event)

        assert "device_status" in caplog.text
        assert "org1" in caplog.text


class TestMemorySink:

    @pytest.mark.asyncio
    async def test_keeps_events(self, event):
        sink = MemorySink()

        await sink.emit(event)
        await sink.close()

        assert sink.events == [event]
