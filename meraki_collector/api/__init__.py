"""
Dashboard API module.

Provides the retrying API client and the shared rate limiter.
"""
from .dashboard_client import DashboardClient, RetryableRequest, parse_retry_after
from .rate_limiter import RateLimiter

__all__ = [
    "DashboardClient",
    "RetryableRequest",
    "parse_retry_after",
    "RateLimiter",
]
