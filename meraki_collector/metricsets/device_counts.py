"""
Organization device counts by status.
"""
from typing import List, Mapping

from ..correlation.event import MetricSample
from ..devices.device import Device
from ..exceptions import MalformedPayloadError
from ..polling.window import CollectionWindow
from ..target import OrganizationTarget
from .base import MetricSet

STATUSES = ("online", "alerting", "offline", "dormant")


class DeviceCountsMetricSet(MetricSet):
    """Organization-level counts; never joined to a device."""

    name = "device_counts"

    async def fetch(
        self,
        target: OrganizationTarget,
        inventory: Mapping[str, Device],
        window: CollectionWindow,
    ) -> List[MetricSample]:
        request = self.client.build_request(
            target, f"/organizations/{target.organization_id}/devices/statuses/overview"
        )
        body, _ = await self.client.invoke(request)

        if not isinstance(body, dict):
            raise MalformedPayloadError(
                f"Expected an object from {request.describe()}, got {type(body).__name__}",
                source=request.url,
            )

        by_status = (body.get("counts") or {}).get("byStatus") or {}

        return [MetricSample(
            device_serial=None,
            fields={"device_counts": {status: by_status.get(status) for status in STATUSES}},
        )]
