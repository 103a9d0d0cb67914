"""
Configuration for the Meraki collector.

Provides settings for the Dashboard API client, rate limiting,
collection windows, and the organizations to collect from.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_METRICSETS = [
    "device_status",
    "uplinks_loss_and_latency",
    "appliance_uplinks",
    "cellular_gateway_uplinks",
    "performance_score",
    "device_counts",
]


class DashboardAPISettings(BaseSettings):
    """Meraki Dashboard API client configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MERAKI_",
        env_file=".env",
        extra="ignore",
    )

    base_url: str = Field(default="https://api.meraki.com", description="Dashboard API base URL")
    api_key: Optional[str] = Field(default=None, description="Dashboard API key")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    user_agent: str = Field(default="MerakiCollector/1.0", description="User-Agent header")

    # Retry policy
    max_attempts: int = Field(default=5, ge=1, description="Maximum attempts per request")
    retry_base_delay: float = Field(default=1.0, ge=0, description="Base backoff delay (seconds)")
    max_backoff: float = Field(default=60.0, ge=0, description="Maximum backoff delay (seconds)")
    retry_jitter: float = Field(default=0.5, ge=0, description="Random jitter added to backoff (seconds)")

    # Rate limiting
    requests_per_second: float = Field(default=10.0, ge=0, description="Request budget per organization (0 disables)")
    shared_rate_limit: bool = Field(default=False, description="Share one budget across all organizations")

    max_pages: int = Field(default=100, ge=1, description="Maximum pages followed for paginated endpoints")


class CollectionSettings(BaseSettings):
    """Collection cycle configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MERAKI_COLLECTION_",
        env_file=".env",
        extra="ignore",
    )

    period: float = Field(default=60.0, gt=0, description="Collection period in seconds")
    window_margin: float = Field(default=10.0, ge=0, description="Extra seconds added to fetch windows")
    max_window: float = Field(
        default=300.0, gt=0, description="Longest timespan requested from time-series endpoints"
    )
    late_arrival_grace: float = Field(
        default=10.0, ge=0, description="Seconds before a window in which late samples are still accepted"
    )
    skip_disabled_organizations: bool = Field(
        default=True, description="Skip organizations whose Dashboard API access is disabled"
    )
    max_concurrent_organizations: Optional[int] = Field(
        default=None, ge=1, description="Organizations processed concurrently (None = unbounded)"
    )
    max_concurrent_device_requests: int = Field(
        default=5, ge=1, description="Concurrent per-device requests within an organization"
    )
    emit_timeout: float = Field(default=5.0, gt=0, description="Timeout for a single event emission")
    metricsets: List[str] = Field(
        default_factory=lambda: list(DEFAULT_METRICSETS),
        description="Enabled metricsets",
    )


class CollectorSettings(BaseSettings):
    """Main configuration for the collector."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Meraki Collector")
    log_level: str = Field(default="INFO")

    organizations: List[str] = Field(
        default_factory=list,
        description="Organization IDs to collect from",
    )

    # Sub-settings
    api: DashboardAPISettings = Field(default_factory=DashboardAPISettings)
    collection: CollectionSettings = Field(default_factory=CollectionSettings)

    def validate_settings(self) -> List[str]:
        """
        Validate settings that cannot be checked per field.

        Returns:
            List of error messages.
        """
        errors = []

        if not self.organizations:
            errors.append("No organizations configured")

        if not self.api.api_key:
            errors.append("MERAKI_API_KEY is not set")

        collection = self.collection
        if collection.period + collection.window_margin > collection.max_window:
            errors.append("Collection period plus window margin exceeds max_window")

        unknown = set(self.collection.metricsets) - set(DEFAULT_METRICSETS)
        if unknown:
            errors.append(f"Unknown metricsets: {', '.join(sorted(unknown))}")

        return errors


@lru_cache()
def get_collector_settings() -> CollectorSettings:
    """
    Get cached collector settings.

    Uses LRU cache to avoid re-reading environment variables on every access.
    """
    return CollectorSettings()
