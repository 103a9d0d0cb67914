"""
Uplink loss and latency metricset.

Time-series loss percentage and latency per device uplink, fetched over
the collection window.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..api.dashboard_client import DashboardClient
from ..config import CollectionSettings
from ..correlation.event import MetricSample, UnresolvedPolicy
from ..devices.device import Device, parse_serial
from ..exceptions import MalformedPayloadError
from ..polling.window import CollectionWindow
from ..target import OrganizationTarget
from .base import MetricSet, parse_timestamp

logger = logging.getLogger(__name__)

# serial, uplink, ip, ts
PointKey = Tuple[str, Any, Any, datetime]


class UplinksLossAndLatencyMetricSet(MetricSet):
    """
    Uplink loss and latency time series.

    Samples for devices missing from the inventory are dropped. Points
    published after their window closed are picked up through the
    window's grace interval and deduplicated against recently
    collected points.
    """

    name = "uplinks_loss_and_latency"
    unresolved_policy = UnresolvedPolicy.DROP

    def __init__(
        self,
        client: DashboardClient,
        settings: Optional[CollectionSettings] = None,
    ):
        super().__init__(client, settings)
        # Recently collected points per organization
        self._recent: Dict[str, Dict[PointKey, datetime]] = {}

    async def fetch(
        self,
        target: OrganizationTarget,
        inventory: Mapping[str, Device],
        window: CollectionWindow,
    ) -> List[MetricSample]:
        return await self.fetch_time_series(target, window)

    async def fetch_time_series(
        self,
        target: OrganizationTarget,
        window: CollectionWindow,
    ) -> List[MetricSample]:
        """
        Fetch loss and latency samples inside a window.

        Points with neither loss nor latency are skipped, as are points
        outside the window. Late points in the grace interval are kept
        unless they were already collected.

        Args:
            target: Organization target.
            window: Collection window.

        Returns:
            One sample per uplink measurement.

        Raises:
            MalformedPayloadError: If any timestamp is malformed.
        """
        path = f"/organizations/{target.organization_id}/devices/uplinksLossAndLatency"
        entries = await self._fetch_list(
            target, path, params={"timespan": window.timespan_seconds}
        )

        recent = self._recent.get(target.organization_id, {})
        collected: Dict[PointKey, datetime] = {}
        samples: List[MetricSample] = []
        outside = 0
        late = 0

        for entry in entries:
            serial = parse_serial(entry.get("serial"))
            if serial is None:
                logger.debug(f"Skipping uplink entry without serial for {target.organization_id}")
                continue

            for point in entry.get("timeSeries") or []:
                if not isinstance(point, dict):
                    raise MalformedPayloadError(
                        f"Unexpected time series point {point!r} for {serial}",
                        source=path,
                    )

                loss = point.get("lossPercent")
                latency = point.get("latencyMs")
                if loss is None and latency is None:
                    continue

                timestamp = parse_timestamp(point.get("ts"), source=path)
                key = (serial, entry.get("uplink"), entry.get("ip"), timestamp)

                if window.contains(timestamp):
                    pass
                elif window.in_grace(timestamp) and key not in recent and key not in collected:
                    late += 1
                else:
                    outside += 1
                    continue

                collected[key] = timestamp
                samples.append(MetricSample(
                    device_serial=serial,
                    timestamp=timestamp,
                    fields={
                        "uplink": {
                            "ip": entry.get("ip"),
                            "interface": entry.get("uplink"),
                            "loss_percent": loss,
                            "latency_ms": latency,
                        },
                    },
                ))

        # Later windows only look back this far for late points
        cutoff = window.start - timedelta(seconds=self.settings.late_arrival_grace)
        self._recent[target.organization_id] = {
            key: timestamp
            for key, timestamp in {**recent, **collected}.items()
            if timestamp > cutoff
        }

        if late:
            logger.debug(f"Collected {late} late uplink points for {target.organization_id}")
        if outside:
            logger.debug(
                f"Ignored {outside} uplink points outside "
                f"({window.start.isoformat()}, {window.end.isoformat()}]"
            )

        return samples
