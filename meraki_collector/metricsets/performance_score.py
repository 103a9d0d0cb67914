"""
Appliance performance score metricset.

The performance endpoint has no organization-wide variant, so it is read
once per MX appliance through a bounded pool of concurrent requests.
"""
import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..correlation.event import MetricSample, UnresolvedPolicy
from ..devices.device import Device
from ..exceptions import MalformedPayloadError, TerminalUpstreamError
from ..polling.window import CollectionWindow
from ..target import OrganizationTarget
from .base import MetricSet

logger = logging.getLogger(__name__)


def _performance_fields(
    score: Optional[Any] = None,
    status_code: Optional[int] = None,
    fetch_failed: bool = False,
) -> Dict[str, Any]:
    performance: Dict[str, Any] = {}
    if score is not None:
        performance["score"] = score
    if status_code is not None:
        performance["http_status_code"] = status_code
    if fetch_failed:
        performance["fetch_failed"] = True
    return {"device": {"performance": performance}}


class PerformanceScoreMetricSet(MetricSet):
    """
    MX appliance performance score.

    Samples for devices missing from the inventory are dropped.
    """

    name = "performance_score"
    unresolved_policy = UnresolvedPolicy.DROP

    async def fetch(
        self,
        target: OrganizationTarget,
        inventory: Mapping[str, Device],
        window: CollectionWindow,
    ) -> List[MetricSample]:
        serials = [serial for serial, device in inventory.items() if device.is_appliance]
        if not serials:
            return []

        samples = await self.fetch_point_in_time(target, serials)
        return list(samples.values())

    async def fetch_point_in_time(
        self,
        target: OrganizationTarget,
        serials: Iterable[str],
    ) -> Dict[str, MetricSample]:
        """
        Read the performance score of each device.

        A device whose request fails is recorded with a status marker
        instead of a score; it never aborts the other devices.

        Args:
            target: Organization target.
            serials: Device serials to read.

        Returns:
            Mapping of serial to sample, in input order.
        """
        semaphore = asyncio.Semaphore(max(self.settings.max_concurrent_device_requests, 1))

        async def read(serial: str) -> MetricSample:
            async with semaphore:
                return await self._read_device(target, serial)

        serials = list(dict.fromkeys(serials))
        results = await asyncio.gather(*(read(serial) for serial in serials))

        return dict(zip(serials, results))

    async def _read_device(self, target: OrganizationTarget, serial: str) -> MetricSample:
        request = self.client.build_request(target, f"/devices/{serial}/appliance/performance")

        try:
            body, status = await self.client.invoke(request)
        except (TerminalUpstreamError, MalformedPayloadError) as e:
            status_code = getattr(e, "status_code", None)
            logger.warning(f"Performance score fetch failed for {serial}: {e.message}")
            return MetricSample(
                device_serial=serial,
                fields=_performance_fields(status_code=status_code, fetch_failed=True),
            )

        score = body.get("perfScore") if isinstance(body, dict) else None
        if status == 200 and score is not None:
            return MetricSample(device_serial=serial, fields=_performance_fields(score=score))

        logger.debug(f"No performance score for {serial} (HTTP {status})")
        return MetricSample(device_serial=serial, fields=_performance_fields(status_code=status))
