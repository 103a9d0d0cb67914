"""
Correlation of metric samples with the device inventory.

Joins each sample to its device by serial, flattens device dimensions
and metric fields into dotted paths, and assigns event timestamps.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping

from ..devices.device import Device
from .event import Event, MetricSample, UnresolvedPolicy

logger = logging.getLogger(__name__)

DEVICE_PREFIX = "device"


def flatten(data: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """
    Flatten a nested mapping into dotted paths.

    Nested mappings recurse, lists are kept as values, None values
    are omitted.

    Args:
        data: Nested mapping.
        prefix: Path prefix for every key.

    Returns:
        New flat dictionary.
    """
    flat: Dict[str, Any] = {}

    for key, value in data.items():
        path = f"{prefix}.{key}" if prefix else str(key)

        if isinstance(value, Mapping):
            flat.update(flatten(value, path))
        elif isinstance(value, list):
            flat[path] = list(value)
        elif value is not None:
            flat[path] = value

    return flat


def _copy(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: list(value) if isinstance(value, list) else value for key, value in fields.items()}


def device_dimensions(device: Device) -> Dict[str, Any]:
    """Flatten a device into ``device.*`` dimensions."""
    return flatten(device.to_dict(), DEVICE_PREFIX)


def correlate(
    organization_id: str,
    metricset: str,
    inventory: Mapping[str, Device],
    samples: Iterable[MetricSample],
    collected_at: datetime,
    policy: UnresolvedPolicy = UnresolvedPolicy.DROP,
) -> List[Event]:
    """
    Map metric samples to events.

    A sample whose serial is in the inventory is enriched with the
    device dimensions. A sample with an unknown serial is dropped or
    emitted with metric fields only, depending on ``policy``. The event
    timestamp is the sample's own timestamp if it has one, otherwise the
    collection instant. Inputs are not modified.

    Args:
        organization_id: Organization the samples belong to.
        metricset: Metricset name.
        inventory: Mapping of serial to device.
        samples: Samples to map.
        collected_at: Collection instant.
        policy: Handling of samples with an unknown serial.

    Returns:
        Events in sample order.
    """
    events: List[Event] = []
    dropped = 0
    degraded = 0

    for sample in samples:
        if sample.device_serial is None:
            dimensions: Dict[str, Any] = {}
        elif sample.device_serial in inventory:
            dimensions = device_dimensions(inventory[sample.device_serial])
        elif policy is UnresolvedPolicy.DROP:
            dropped += 1
            continue
        else:
            dimensions = {}
            degraded += 1

        timestamp = sample.timestamp or collected_at
        base = {**dimensions, **flatten(sample.fields)}

        if sample.entries:
            for entry in sample.entries:
                events.append(Event(
                    timestamp=timestamp,
                    organization_id=organization_id,
                    metricset=metricset,
                    fields={**_copy(base), **flatten(entry)},
                ))
        else:
            events.append(Event(
                timestamp=timestamp,
                organization_id=organization_id,
                metricset=metricset,
                fields=base,
            ))

    if dropped or degraded:
        logger.debug(
            f"{metricset} for {organization_id}: {dropped} samples dropped and "
            f"{degraded} emitted without device metadata (unknown serial)"
        )

    return events
