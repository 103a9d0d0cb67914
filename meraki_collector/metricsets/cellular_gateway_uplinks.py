"""
Cellular gateway uplink status metricset.
"""
from typing import List, Mapping

from ..correlation.event import MetricSample, UnresolvedPolicy
from ..devices.device import Device, parse_serial
from ..polling.window import CollectionWindow
from ..target import OrganizationTarget
from .base import MetricSet


class CellularGatewayUplinksMetricSet(MetricSet):
    """
    Uplink status of MG cellular gateways, one event per uplink interface.

    Samples for devices missing from the inventory are dropped.
    """

    name = "cellular_gateway_uplinks"
    unresolved_policy = UnresolvedPolicy.DROP

    async def fetch(
        self,
        target: OrganizationTarget,
        inventory: Mapping[str, Device],
        window: CollectionWindow,
    ) -> List[MetricSample]:
        entries = await self._fetch_list(
            target,
            f"/organizations/{target.organization_id}/cellularGateway/uplink/statuses",
        )

        samples = []
        for entry in entries:
            serial = parse_serial(entry.get("serial"))
            uplinks = [u for u in entry.get("uplinks") or [] if isinstance(u, dict)]
            if serial is None or not uplinks:
                continue

            samples.append(MetricSample(
                device_serial=serial,
                fields={
                    "device": {
                        "uplink": {
                            "cellular": {
                                "gateway": {
                                    "network_id": entry.get("networkId"),
                                    "last_reported_at": entry.get("lastReportedAt"),
                                },
                            },
                        },
                    },
                },
                entries=[self._uplink_fields(uplink) for uplink in uplinks],
            ))

        return samples

    @staticmethod
    def _uplink_fields(uplink: dict) -> dict:
        signal_stat = uplink.get("signalStat") or {}

        return {
            "device": {
                "uplink": {
                    "cellular": {
                        "gateway": {
                            "apn": uplink.get("apn"),
                            "connection_type": uplink.get("connectionType"),
                            "dns1": uplink.get("dns1"),
                            "dns2": uplink.get("dns2"),
                            "gateway": uplink.get("gateway"),
                            "iccid": uplink.get("iccid"),
                            "interface": uplink.get("interface"),
                            "ip": uplink.get("ip"),
                            "model": uplink.get("model"),
                            "provider": uplink.get("provider"),
                            "public_ip": uplink.get("publicIp"),
                            "signal_stat": {
                                "rsrp": signal_stat.get("rsrp"),
                                "rsrq": signal_stat.get("rsrq"),
                            },
                            "signal_type": uplink.get("signalType"),
                            "status": uplink.get("status"),
                        },
                    },
                },
            },
        }
