"""
Device inventory module.

Provides the device model and per-organization inventory resolution.
"""
from .device import Device, parse_serial
from .inventory import Inventory, InventoryResolver, build_inventory

__all__ = [
    "Device",
    "parse_serial",
    "Inventory",
    "InventoryResolver",
    "build_inventory",
]
