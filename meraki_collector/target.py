"""
Organization collection targets.
"""
from dataclasses import dataclass
from typing import List

from .config import CollectorSettings


@dataclass(frozen=True)
class OrganizationTarget:
    """
    A unit of collection work.

    Everything needed to address the Dashboard API for one organization.
    """
    organization_id: str
    base_url: str
    api_key: str
    period: float

    def __repr__(self) -> str:
        # Keep the API key out of logs
        return (
            f"OrganizationTarget("
            f"organization_id={self.organization_id}, "
            f"base_url={self.base_url}, "
            f"period={self.period})"
        )


def build_targets(settings: CollectorSettings) -> List[OrganizationTarget]:
    """
    Build collection targets from settings.

    Args:
        settings: Collector settings.

    Returns:
        One target per configured organization, in configuration order.
    """
    return [
        OrganizationTarget(
            organization_id=organization_id,
            base_url=settings.api.base_url,
            api_key=settings.api.api_key or "",
            period=settings.collection.period,
        )
        for organization_id in settings.organizations
    ]
