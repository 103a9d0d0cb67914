"""
Base class for metricsets.

A metricset is one named metric stream: how it is fetched, how its
payload maps to samples, and what happens to samples whose device is
not in the inventory.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from ..api.dashboard_client import DashboardClient
from ..config import CollectionSettings, get_collector_settings
from ..correlation.correlator import correlate
from ..correlation.event import Event, MetricSample, UnresolvedPolicy
from ..devices.device import Device
from ..exceptions import MalformedPayloadError
from ..polling.window import CollectionWindow
from ..target import OrganizationTarget

logger = logging.getLogger(__name__)

# RFC 3339 in UTC, as returned by the Dashboard API
TIMESTAMP_FORMATS = (
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%fZ",
)


def parse_timestamp(value: Any, source: Optional[str] = None) -> datetime:
    """
    Parse a Dashboard API timestamp.

    Args:
        value: Raw timestamp, e.g. ``2024-03-01T12:00:00Z``.
        source: Payload description for error messages.

    Returns:
        Timezone-aware UTC datetime.

    Raises:
        MalformedPayloadError: If the value is not in the wire format.
    """
    if isinstance(value, str):
        for fmt in TIMESTAMP_FORMATS:
            try:
                return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
            except ValueError:
                continue

    raise MalformedPayloadError(
        f"Failed to parse timestamp {value!r}" + (f" in {source}" if source else ""),
        source=source,
    )


class MetricSet(ABC):
    """
    Base class for all metricsets.

    Subclasses set ``name`` and ``unresolved_policy`` and implement
    ``fetch``.
    """

    name: str = ""
    unresolved_policy: UnresolvedPolicy = UnresolvedPolicy.DROP

    def __init__(
        self,
        client: DashboardClient,
        settings: Optional[CollectionSettings] = None,
    ):
        """
        Initialize the metricset.

        Args:
            client: Dashboard API client.
            settings: Collection settings.
        """
        self.client = client
        self.settings = settings or get_collector_settings().collection

    @abstractmethod
    async def fetch(
        self,
        target: OrganizationTarget,
        inventory: Mapping[str, Device],
        window: CollectionWindow,
    ) -> List[MetricSample]:
        """
        Fetch samples for an organization.

        Args:
            target: Organization target.
            inventory: Device inventory resolved for this cycle.
            window: Collection window for this cycle.

        Returns:
            Samples to correlate.
        """

    def build_events(
        self,
        target: OrganizationTarget,
        inventory: Mapping[str, Device],
        samples: List[MetricSample],
        collected_at: datetime,
    ) -> List[Event]:
        """Correlate samples with the inventory using this metricset's policy."""
        return correlate(
            target.organization_id,
            self.name,
            inventory,
            samples,
            collected_at,
            policy=self.unresolved_policy,
        )

    async def _fetch_list(
        self,
        target: OrganizationTarget,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch a paginated list of objects.

        Raises:
            MalformedPayloadError: If an item is not a JSON object.
        """
        request = self.client.build_request(target, path, params)
        items, _ = await self.client.invoke_paginated(request)

        for item in items:
            if not isinstance(item, dict):
                raise MalformedPayloadError(
                    f"Expected objects from {request.describe()}, "
                    f"got {type(item).__name__}",
                    source=request.url,
                )

        return items

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name}, policy={self.unresolved_policy.value})"
