"""
Unit tests for the uplink loss and latency metricset.
"""
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from meraki_collector.correlation.event import UnresolvedPolicy
from meraki_collector.devices.device import Device
from meraki_collector.exceptions import MalformedPayloadError
from meraki_collector.metricsets import UplinksLossAndLatencyMetricSet, parse_timestamp
from meraki_collector.polling.window import WindowPlanner
from meraki_collector.target import OrganizationTarget

from tests.factories import TimeSeriesPointFactory, UplinkLossLatencyFactory


@pytest.fixture
def window(collected_at):
    return WindowPlanner(period=60, margin=10).plan(collected_at)


def _metricset(make_client, collection_settings, entries, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(200, json=entries)

    return UplinksLossAndLatencyMetricSet(make_client(handler), collection_settings)


class TestParseTimestamp:
    """Test strict timestamp parsing."""

    def test_seconds(self):
        assert parse_timestamp("2024-03-01T11:59:20Z") == datetime(
            2024, 3, 1, 11, 59, 20, tzinfo=timezone.utc
        )

    def test_fractional_seconds(self):
        assert parse_timestamp("2024-03-01T11:59:20.250000Z").microsecond == 250000

    @pytest.mark.parametrize(
        "value",
        ["2024-03-01 11:59:20", "2024-03-01T11:59:20+00:00", "yesterday", "", None, 1709294360],
    )
    def test_malformed(self, value):
        with pytest.raises(MalformedPayloadError):
            parse_timestamp(value, source="test")


class TestFetchTimeSeries:
    """Test time-series fetch."""

    @pytest.mark.asyncio
    async def test_samples_carry_timestamp_and_fields(
        self, make_client, collection_settings, target, window
    ):
        entries = [
            UplinkLossLatencyFactory(
                serial="S1",
                uplink="wan1",
                timeSeries=[TimeSeriesPointFactory(ts="2024-03-01T11:59:20Z", lossPercent=2.5, latencyMs=10.0)],
            )
        ]
        seen = []
        metricset = _metricset(make_client, collection_settings, entries, seen)

        samples = await metricset.fetch_time_series(target, window)

        assert len(samples) == 1
        assert samples[0].device_serial == "S1"
        assert samples[0].timestamp == datetime(2024, 3, 1, 11, 59, 20, tzinfo=timezone.utc)
        assert samples[0].fields["uplink"]["loss_percent"] == 2.5
        assert samples[0].fields["uplink"]["latency_ms"] == 10.0
        assert samples[0].fields["uplink"]["interface"] == "wan1"
        assert seen[0].url.path == "/api/v1/organizations/org1/devices/uplinksLossAndLatency"
        assert seen[0].url.params["timespan"] == "70"

    @pytest.mark.asyncio
    async def test_all_null_points_dropped(
        self, make_client, collection_settings, target, window
    ):
        """Test points without any metric are skipped, partial ones kept."""
        entries = [
            UplinkLossLatencyFactory(
                serial="S1",
                timeSeries=[
                    TimeSeriesPointFactory(ts="2024-03-01T11:59:00Z", lossPercent=None, latencyMs=None),
                    TimeSeriesPointFactory(ts="2024-03-01T11:59:20Z", lossPercent=None, latencyMs=12.0),
                    TimeSeriesPointFactory(ts="2024-03-01T11:59:40Z", lossPercent=0.0, latencyMs=None),
                ],
            )
        ]
        metricset = _metricset(make_client, collection_settings, entries)

        samples = await metricset.fetch_time_series(target, window)

        assert len(samples) == 2
        assert samples[0].fields["uplink"]["latency_ms"] == 12.0
        assert samples[1].fields["uplink"]["loss_percent"] == 0.0

    @pytest.mark.asyncio
    async def test_malformed_timestamp_fails_fetch(
        self, make_client, collection_settings, target, window
    ):
        entries = [
            UplinkLossLatencyFactory(
                serial="S1",
                timeSeries=[
                    TimeSeriesPointFactory(ts="2024-03-01T11:59:20Z"),
                    TimeSeriesPointFactory(ts="2024-03-01 11:59:40"),
                ],
            )
        ]
        metricset = _metricset(make_client, collection_settings, entries)

        with pytest.raises(MalformedPayloadError):
            await metricset.fetch_time_series(target, window)

    @pytest.mark.asyncio
    async def test_points_outside_window_skipped(
        self, make_client, collection_settings, target, collected_at
    ):
        planner = WindowPlanner(period=60, margin=10)
        planner.commit(planner.plan(collected_at - timedelta(seconds=60)))
        window = planner.plan(collected_at)
        entries = [
            UplinkLossLatencyFactory(
                serial="S1",
                timeSeries=[
                    TimeSeriesPointFactory(ts="2024-03-01T11:58:50Z"),
                    TimeSeriesPointFactory(ts="2024-03-01T11:59:00Z"),
                    TimeSeriesPointFactory(ts="2024-03-01T11:59:30Z"),
                    TimeSeriesPointFactory(ts="2024-03-01T12:00:00Z"),
                ],
            )
        ]
        metricset = _metricset(make_client, collection_settings, entries)

        samples = await metricset.fetch_time_series(target, window)

        assert [s.timestamp.second for s in samples] == [30, 0]

    @pytest.mark.asyncio
    async def test_entries_without_serial_skipped(
        self, make_client, collection_settings, target, window
    ):
        entries = [UplinkLossLatencyFactory(serial=None), UplinkLossLatencyFactory(serial="S1")]
        metricset = _metricset(make_client, collection_settings, entries)

        samples = await metricset.fetch_time_series(target, window)

        assert [s.device_serial for s in samples] == ["S1"]


class TestEvents:
    """Test events built by the metricset."""

    @pytest.mark.asyncio
    async def test_unknown_devices_dropped(
        self, make_client, collection_settings, target, window, collected_at
    ):
        entries = [UplinkLossLatencyFactory(serial="S1"), UplinkLossLatencyFactory(serial="S9")]
        metricset = _metricset(make_client, collection_settings, entries)
        inventory = {"S1": Device(serial="S1", model="MX84")}

        samples = await metricset.fetch(target, inventory, window)
        events = metricset.build_events(target, inventory, samples, collected_at)

        assert metricset.unresolved_policy is UnresolvedPolicy.DROP
        assert len(events) == 1
        assert events[0].fields["device.serial"] == "S1"


class TestLateArrivals:
    """Test points published after their window was collected."""

    @pytest.mark.asyncio
    async def test_late_point_collected_once(
        self, make_client, collection_settings, target, collected_at
    ):
        """Test a late point is picked up and an already collected one is not repeated."""
        responses = [
            [UplinkLossLatencyFactory(
                serial="S1",
                timeSeries=[TimeSeriesPointFactory(ts="2024-03-01T11:58:55Z")],
            )],
            [UplinkLossLatencyFactory(
                serial="S1",
                timeSeries=[
                    TimeSeriesPointFactory(ts="2024-03-01T11:58:40Z"),
                    TimeSeriesPointFactory(ts="2024-03-01T11:58:55Z"),
                    TimeSeriesPointFactory(ts="2024-03-01T11:58:58Z"),
                    TimeSeriesPointFactory(ts="2024-03-01T11:59:30Z"),
                ],
            )],
        ]
        metricset = UplinksLossAndLatencyMetricSet(
            make_client(lambda request: httpx.Response(200, json=responses.pop(0))),
            collection_settings,
        )
        planner = WindowPlanner(period=60, margin=10, late_grace=10)

        first = planner.plan(collected_at - timedelta(seconds=60))
        first_samples = await metricset.fetch_time_series(target, first)
        planner.commit(first)
        second_samples = await metricset.fetch_time_series(target, planner.plan(collected_at))

        assert [s.timestamp.strftime("%H:%M:%S") for s in first_samples] == ["11:58:55"]
        assert [s.timestamp.strftime("%H:%M:%S") for s in second_samples] == ["11:58:58", "11:59:30"]

    @pytest.mark.asyncio
    async def test_late_points_tracked_per_organization(
        self, make_client, collection_settings, collected_at
    ):
        entries = [UplinkLossLatencyFactory(
            serial="S1",
            timeSeries=[TimeSeriesPointFactory(ts="2024-03-01T11:58:55Z")],
        )]
        metricset = _metricset(make_client, collection_settings, entries)
        planner = WindowPlanner(period=60, margin=10, late_grace=10)
        planner.commit(planner.plan(collected_at - timedelta(seconds=60)))
        window = planner.plan(collected_at)
        org1 = OrganizationTarget("org1", "https://api.meraki.test", "key", 60.0)
        org2 = OrganizationTarget("org2", "https://api.meraki.test", "key", 60.0)

        assert len(await metricset.fetch_time_series(org1, window)) == 1
        assert len(await metricset.fetch_time_series(org1, window)) == 0
        assert len(await metricset.fetch_time_series(org2, window)) == 1
