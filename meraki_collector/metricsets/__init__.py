"""
Metricsets collected from the Dashboard API.

Each metricset fetches one metric stream for an organization and maps
it to samples. Metricsets are constructed explicitly by name.
"""
from typing import Dict, Iterable, List, Optional, Type

from ..api.dashboard_client import DashboardClient
from ..config import CollectionSettings
from .appliance_uplinks import ApplianceUplinksMetricSet
from .base import MetricSet, parse_timestamp
from .cellular_gateway_uplinks import CellularGatewayUplinksMetricSet
from .device_counts import DeviceCountsMetricSet
from .device_status import DeviceStatusMetricSet
from .performance_score import PerformanceScoreMetricSet
from .uplinks_loss_and_latency import UplinksLossAndLatencyMetricSet

METRICSET_CLASSES: Dict[str, Type[MetricSet]] = {
    cls.name: cls
    for cls in (
        DeviceStatusMetricSet,
        UplinksLossAndLatencyMetricSet,
        ApplianceUplinksMetricSet,
        CellularGatewayUplinksMetricSet,
        PerformanceScoreMetricSet,
        DeviceCountsMetricSet,
    )
}


def build_metricsets(
    client: DashboardClient,
    settings: CollectionSettings,
    names: Optional[Iterable[str]] = None,
) -> List[MetricSet]:
    """
    Construct metricsets by name.

    Args:
        client: Dashboard API client shared by all metricsets.
        settings: Collection settings.
        names: Metricset names, defaults to ``settings.metricsets``.

    Returns:
        Metricsets in the order given.

    Raises:
        ValueError: If a name is not a known metricset.
    """
    metricsets = []
    for name in names if names is not None else settings.metricsets:
        cls = METRICSET_CLASSES.get(name)
        if cls is None:
            raise ValueError(f"Unknown metricset: {name}")
        metricsets.append(cls(client, settings))
    return metricsets


__all__ = [
    "MetricSet",
    "parse_timestamp",
    "METRICSET_CLASSES",
    "build_metricsets",
    "DeviceStatusMetricSet",
    "UplinksLossAndLatencyMetricSet",
    "ApplianceUplinksMetricSet",
    "CellularGatewayUplinksMetricSet",
    "PerformanceScoreMetricSet",
    "DeviceCountsMetricSet",
]
