"""
Device inventory entity.

Static device attributes (dimensions) decoded from the Dashboard
organization devices listing.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

Number = Union[int, float]


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _optional_number(value: Any) -> Optional[Number]:
    """
    Normalize an optional numeric field.

    Absent, empty, and unparseable values are None. Zero is a value.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return None
    return None


def _tags(value: Any) -> List[str]:
    # Older API versions return tags as one space-separated string
    if isinstance(value, str):
        return value.split()
    if isinstance(value, list):
        return [str(tag) for tag in value if tag is not None]
    return []


def _details(value: Any) -> Dict[str, Any]:
    details: Dict[str, Any] = {}
    if not isinstance(value, list):
        return details
    for item in value:
        if isinstance(item, dict) and item.get("name"):
            details[str(item["name"])] = item.get("value")
    return details


def parse_serial(value: Any) -> Optional[str]:
    """
    Parse a device serial.

    Returns:
        Stripped serial, or None if missing, empty, or not a string.
    """
    if not isinstance(value, str):
        return None
    serial = value.strip()
    return serial or None


@dataclass
class Device:
    """
    Static attributes of a managed device.

    The serial is the device key. Optional attributes that are absent
    upstream stay None and are omitted from events.
    """
    serial: str
    name: Optional[str] = None
    model: Optional[str] = None
    network_id: Optional[str] = None
    firmware: Optional[str] = None
    product_type: Optional[str] = None
    mac: Optional[str] = None
    lan_ip: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    imei: Optional[Number] = None
    # (longitude, latitude) order is significant
    location: Optional[List[Number]] = None
    tags: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Optional["Device"]:
        """
        Build a device from one organization devices entry.

        Args:
            payload: Decoded JSON object for the device.

        Returns:
            Device, or None if the entry has no usable serial.
        """
        serial = parse_serial(payload.get("serial"))
        if serial is None:
            return None

        lng = _optional_number(payload.get("lng"))
        lat = _optional_number(payload.get("lat"))
        location = [lng, lat] if lng is not None and lat is not None else None

        return cls(
            serial=serial,
            name=_optional_str(payload.get("name")),
            model=_optional_str(payload.get("model")),
            network_id=_optional_str(payload.get("networkId")),
            firmware=_optional_str(payload.get("firmware")),
            product_type=_optional_str(payload.get("productType")),
            mac=_optional_str(payload.get("mac")),
            lan_ip=_optional_str(payload.get("lanIp")),
            address=_optional_str(payload.get("address")),
            notes=_optional_str(payload.get("notes")),
            imei=_optional_number(payload.get("imei")),
            location=location,
            tags=_tags(payload.get("tags")),
            details=_details(payload.get("details")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a nested dictionary of present attributes."""
        data: Dict[str, Any] = {
            "serial": self.serial,
            "name": self.name,
            "model": self.model,
            "network_id": self.network_id,
            "firmware": self.firmware,
            "product_type": self.product_type,
            "mac": self.mac,
            "lan_ip": self.lan_ip,
            "address": self.address,
            "notes": self.notes,
            "imei": self.imei,
            "location": list(self.location) if self.location is not None else None,
            "tags": list(self.tags),
            "details": dict(self.details),
        }
        return {key: value for key, value in data.items() if value is not None}

    @property
    def is_appliance(self) -> bool:
        """Check if the device is an MX security appliance."""
        return bool(self.model) and self.model.startswith("MX")

    def __repr__(self) -> str:
        return f"Device(serial={self.serial}, model={self.model})"
