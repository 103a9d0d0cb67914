"""
Correlation module.

Joins metric samples to inventory devices and maps them to events.
"""
from .event import Event, MetricSample, UnresolvedPolicy
from .correlator import correlate, device_dimensions, flatten

__all__ = [
    "Event",
    "MetricSample",
    "UnresolvedPolicy",
    "correlate",
    "device_dimensions",
    "flatten",
]
