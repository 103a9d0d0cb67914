"""
Shared pytest fixtures for collector tests.

Provides fixtures for:
- Settings tuned for fast tests (no backoff, no rate-limit spacing)
- Organization targets
- Dashboard API clients backed by httpx.MockTransport
- Event sinks
"""
import os
from datetime import datetime, timezone
from typing import Callable

import httpx
import pytest
import pytest_asyncio

from meraki_collector.api.dashboard_client import DashboardClient
from meraki_collector.api.rate_limiter import RateLimiter
from meraki_collector.config import CollectionSettings, DashboardAPISettings
from meraki_collector.output.sinks import MemorySink
from meraki_collector.target import OrganizationTarget

# Test environment configuration
os.environ.setdefault("MERAKI_API_KEY", "test-api-key")

BASE_URL = "https://api.meraki.test"


# ============================================================================
# Settings Fixtures
# ============================================================================

@pytest.fixture
def api_settings() -> DashboardAPISettings:
    """API settings with immediate retries and no request spacing."""
    return DashboardAPISettings(
        base_url=BASE_URL,
        api_key="test-api-key",
        max_attempts=5,
        retry_base_delay=0.0,
        retry_jitter=0.0,
        max_backoff=0.0,
        requests_per_second=0.0,
    )


@pytest.fixture
def collection_settings() -> CollectionSettings:
    """Collection settings for tests."""
    return CollectionSettings(
        period=60.0,
        window_margin=10.0,
        max_concurrent_device_requests=2,
        emit_timeout=1.0,
    )


# ============================================================================
# Target Fixtures
# ============================================================================

@pytest.fixture
def target() -> OrganizationTarget:
    """Organization target for org1."""
    return OrganizationTarget(
        organization_id="org1",
        base_url=BASE_URL,
        api_key="test-api-key",
        period=60.0,
    )


@pytest.fixture
def collected_at() -> datetime:
    """Fixed collection instant."""
    return datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# Client Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def make_client(api_settings):
    """
    Factory for Dashboard API clients backed by a request handler.

    Usage:
        client = make_client(lambda request: httpx.Response(200, json=[]))
    """
    clients = []

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> DashboardClient:
        client = DashboardClient(
            settings=api_settings,
            rate_limiter=RateLimiter(requests_per_second=0.0),
            transport=httpx.MockTransport(handler),
        )
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.disconnect()


@pytest.fixture
def memory_sink() -> MemorySink:
    """Sink that keeps emitted events in memory."""
    return MemorySink()
