"""
Inventory resolution for an organization.

Fetches the organization device listing and builds the serial-keyed
inventory used to enrich metric samples.
"""
import logging
from typing import Any, Dict, List

from ..api.dashboard_client import DashboardClient
from ..exceptions import MalformedPayloadError
from ..target import OrganizationTarget
from .device import Device

logger = logging.getLogger(__name__)

DEVICES_PAGE_SIZE = 1000

Inventory = Dict[str, Device]


def build_inventory(entries: List[Any]) -> Inventory:
    """
    Build a serial-keyed inventory from device listing entries.

    Entries without a usable serial are skipped. When two entries share
    a serial, the later one in fetch order wins.

    Args:
        entries: Decoded device listing.

    Returns:
        Mapping of serial to device.
    """
    inventory: Inventory = {}
    skipped = 0

    for entry in entries:
        if not isinstance(entry, dict):
            skipped += 1
            continue

        device = Device.from_payload(entry)
        if device is None:
            skipped += 1
            continue

        if device.serial in inventory:
            logger.debug(f"Duplicate serial {device.serial} in inventory, keeping latest")
        inventory[device.serial] = device

    if skipped:
        logger.debug(f"Skipped {skipped} inventory entries without a serial")

    return inventory


class InventoryResolver:
    """
    Resolves the device inventory for an organization.

    The inventory is rebuilt on every call; nothing is cached across
    collection cycles.
    """

    def __init__(self, client: DashboardClient):
        """
        Initialize the inventory resolver.

        Args:
            client: Dashboard API client.
        """
        self.client = client

    async def resolve_inventory(self, target: OrganizationTarget) -> Inventory:
        """
        Fetch and build the inventory for an organization.

        Args:
            target: Organization target.

        Returns:
            Mapping of serial to device.

        Raises:
            TerminalUpstreamError: If the listing cannot be fetched.
            MalformedPayloadError: If the listing cannot be decoded.
        """
        request = self.client.build_request(
            target,
            f"/organizations/{target.organization_id}/devices",
            params={"perPage": DEVICES_PAGE_SIZE},
        )
        entries, _ = await self.client.invoke_paginated(request)

        if not isinstance(entries, list):
            raise MalformedPayloadError(
                f"Device listing for {target.organization_id} is not a list",
                source=request.url,
            )

        inventory = build_inventory(entries)
        logger.info(
            f"Resolved {len(inventory)} devices for organization "
            f"{target.organization_id}"
        )
        return inventory

    async def is_api_enabled(self, target: OrganizationTarget) -> bool:
        """
        Check whether Dashboard API access is enabled for an organization.

        Organizations missing from the listing are treated as enabled;
        any real access problem then surfaces from the inventory request.

        Args:
            target: Organization target.

        Returns:
            False if the organization reports ``api.enabled`` as false.
        """
        request = self.client.build_request(target, "/organizations")
        organizations, _ = await self.client.invoke_paginated(request)

        for organization in organizations:
            if not isinstance(organization, dict):
                continue
            if str(organization.get("id")) != target.organization_id:
                continue
            api = organization.get("api") or {}
            return api.get("enabled") is not False

        logger.debug(f"Organization {target.organization_id} not in organization listing")
        return True
