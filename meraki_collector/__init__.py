"""
Meraki Collector - periodic telemetry collection from the Meraki Dashboard API.

Resolves device inventories, fetches metric streams, and emits one
structured event per sample enriched with device dimensions.
"""
from .config import CollectorSettings, get_collector_settings
from .main import CollectorService

__all__ = [
    "CollectorSettings",
    "get_collector_settings",
    "CollectorService",
]
