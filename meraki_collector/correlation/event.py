"""
Metric samples and emitted events.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class UnresolvedPolicy(str, Enum):
    """What to do with a sample whose serial is not in the inventory."""
    DROP = "drop"
    DEGRADE = "degrade"


@dataclass
class MetricSample:
    """
    A dynamic observation for one device.

    ``fields`` is a nested mapping flattened into dotted paths on
    emission. When ``entries`` is set, one event is emitted per entry
    (for example one per uplink interface), each combining the shared
    fields with the entry's own fields. A sample without a serial is
    organization-level and is never joined to a device.
    """
    device_serial: Optional[str]
    fields: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[datetime] = None
    entries: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class Event:
    """Structured event handed to an event sink."""
    timestamp: datetime
    organization_id: str
    metricset: str
    fields: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        timestamp = self.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        return {
            "@timestamp": timestamp.astimezone(timezone.utc).isoformat(),
            "organization_id": self.organization_id,
            "metricset": self.metricset,
            **self.fields,
        }
