"""
Test data factories for the collector.

Provides factory classes for generating Dashboard API payloads.
"""
from .device_factory import DevicePayloadFactory, DeviceStatusFactory
from .uplink_factory import (
    ApplianceUplinkStatusFactory,
    CellularGatewayUplinkStatusFactory,
    TimeSeriesPointFactory,
    UplinkLossLatencyFactory,
)

__all__ = [
    "DevicePayloadFactory",
    "DeviceStatusFactory",
    "TimeSeriesPointFactory",
    "UplinkLossLatencyFactory",
    "ApplianceUplinkStatusFactory",
    "CellularGatewayUplinkStatusFactory",
]
