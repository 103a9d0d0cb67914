"""
Device status metricset.

Point-in-time online/alerting/offline/dormant status per device.
"""
from typing import List, Mapping

from ..correlation.event import MetricSample, UnresolvedPolicy
from ..devices.device import Device, parse_serial
from ..polling.window import CollectionWindow
from ..target import OrganizationTarget
from .base import MetricSet


class DeviceStatusMetricSet(MetricSet):
    """
    Device statuses for an organization.

    A status is meaningful without device metadata, so samples for
    devices missing from the inventory are still emitted with their
    status fields only.
    """

    name = "device_status"
    unresolved_policy = UnresolvedPolicy.DEGRADE

    async def fetch(
        self,
        target: OrganizationTarget,
        inventory: Mapping[str, Device],
        window: CollectionWindow,
    ) -> List[MetricSample]:
        entries = await self._fetch_list(
            target, f"/organizations/{target.organization_id}/devices/statuses"
        )

        samples = []
        for entry in entries:
            serial = parse_serial(entry.get("serial"))
            if serial is None:
                continue

            samples.append(MetricSample(
                device_serial=serial,
                fields={
                    "device": {
                        "status": {
                            "value": entry.get("status"),
                            "last_reported_at": entry.get("lastReportedAt"),
                            "public_ip": entry.get("publicIp"),
                            "gateway": entry.get("gateway"),
                            "ip_type": entry.get("ipType"),
                            "primary_dns": entry.get("primaryDns"),
                            "secondary_dns": entry.get("secondaryDns"),
                            "lan_ip": entry.get("lanIp"),
                        },
                    },
                },
            ))

        return samples
