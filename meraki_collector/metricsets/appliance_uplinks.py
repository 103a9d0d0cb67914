"""
Appliance uplink status and high availability metricset.
"""
from typing import List, Mapping

from ..correlation.event import MetricSample, UnresolvedPolicy
from ..devices.device import Device, parse_serial
from ..polling.window import CollectionWindow
from ..target import OrganizationTarget
from .base import MetricSet


class ApplianceUplinksMetricSet(MetricSet):
    """
    Uplink status of MX appliances, one event per uplink interface.

    Samples for devices missing from the inventory are dropped.
    """

    name = "appliance_uplinks"
    unresolved_policy = UnresolvedPolicy.DROP

    async def fetch(
        self,
        target: OrganizationTarget,
        inventory: Mapping[str, Device],
        window: CollectionWindow,
    ) -> List[MetricSample]:
        entries = await self._fetch_list(
            target, f"/organizations/{target.organization_id}/appliance/uplink/statuses"
        )

        samples = []
        for entry in entries:
            serial = parse_serial(entry.get("serial"))
            uplinks = [u for u in entry.get("uplinks") or [] if isinstance(u, dict)]
            if serial is None or not uplinks:
                continue

            high_availability = entry.get("highAvailability") or {}

            samples.append(MetricSample(
                device_serial=serial,
                fields={
                    "device": {
                        "uplink": {
                            "high_availability": {
                                "enabled": high_availability.get("enabled"),
                                "role": high_availability.get("role"),
                            },
                            "last_reported_at": entry.get("lastReportedAt"),
                        },
                    },
                },
                entries=[
                    {
                        "device": {
                            "uplink": {
                                "interface": uplink.get("interface"),
                                "status": uplink.get("status"),
                                "ip": uplink.get("ip"),
                                "gateway": uplink.get("gateway"),
                                "public_ip": uplink.get("publicIp"),
                                "primary_dns": uplink.get("primaryDns"),
                                "secondary_dns": uplink.get("secondaryDns"),
                                "ip_assigned_by": uplink.get("ipAssignedBy"),
                            },
                        },
                    }
                    for uplink in uplinks
                ],
            ))

        return samples
