"""
Meraki Dashboard API client.

Issues requests against the Dashboard API with rate-limit aware
retries, pagination, and JSON decoding.
"""
import asyncio
import logging
import random
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

import httpx

from ..config import DashboardAPISettings, get_collector_settings
from ..exceptions import (
    MalformedPayloadError,
    TerminalUpstreamError,
    TransientUpstreamError,
)
from ..target import OrganizationTarget
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
REDIRECT_STATUS_CODES = frozenset({301, 302, 303, 307, 308})
MAX_REDIRECTS = 5


@dataclass
class RetryableRequest:
    """Description of a single Dashboard API call and its retry policy."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    max_attempts: int = 5
    rate_limit_key: str = ""

    def describe(self) -> str:
        """Short description for log messages."""
        return f"{self.method} {self.url}"


def parse_retry_after(response: httpx.Response) -> Optional[float]:
    """
    Parse a Retry-After header.

    Args:
        response: HTTP response.

    Returns:
        Delay in seconds, or None if the header is missing or invalid.
    """
    value = response.headers.get("Retry-After")
    if not value:
        return None

    try:
        return max(float(value), 0.0)
    except ValueError:
        pass

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None

    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max((retry_at - datetime.now(timezone.utc)).total_seconds(), 0.0)


class DashboardClient:
    """
    Client for the Meraki Dashboard API.

    Responsibilities:
    - Build authenticated requests per organization
    - Retry rate-limited and transient failures with backoff
    - Follow pagination links
    - Decode JSON responses
    """

    def __init__(
        self,
        settings: Optional[DashboardAPISettings] = None,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Dashboard API client.

        Args:
            settings: API settings.
            rate_limiter: Shared rate limiter.
            transport: Optional httpx transport (used by tests).
        """
        self.settings = settings or get_collector_settings().api
        self.rate_limiter = rate_limiter or RateLimiter(
            requests_per_second=self.settings.requests_per_second,
            shared=self.settings.shared_rate_limit,
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        # Statistics
        self._requests = 0
        self._retries = 0
        self._rate_limited = 0
        self._failures = 0

    async def connect(self) -> None:
        """Initialize HTTP client."""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(
            headers={
                "User-Agent": self.settings.user_agent,
                "Accept": "application/json",
            },
            timeout=self.settings.timeout,
            follow_redirects=False,
            transport=self._transport,
        )
        logger.info(f"Dashboard API client initialized: {self.settings.base_url}")

    async def disconnect(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Dashboard API client disconnected")

    async def __aenter__(self) -> "DashboardClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    def build_request(
        self,
        target: OrganizationTarget,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> RetryableRequest:
        """
        Build an authenticated GET request for an organization.

        Args:
            target: Organization target.
            path: API path below /api/v1.
            params: Query parameters.

        Returns:
            Request description.
        """
        return RetryableRequest(
            method="GET",
            url=f"{target.base_url.rstrip('/')}{API_PREFIX}{path}",
            headers={"Authorization": f"Bearer {target.api_key}"},
            params=dict(params or {}),
            max_attempts=self.settings.max_attempts,
            rate_limit_key=target.organization_id,
        )

    async def invoke(self, request: RetryableRequest) -> Tuple[Any, int]:
        """
        Execute a request with retries.

        Args:
            request: Request to execute.

        Returns:
            Tuple of (decoded body, status code). The body is None for
            empty responses such as HTTP 204.

        Raises:
            TerminalUpstreamError: On a non-retryable error or once
                attempts are exhausted.
            MalformedPayloadError: If a successful response is not JSON.
        """
        response = await self._send(request)
        return self._decode(request, response), response.status_code

    async def invoke_paginated(
        self,
        request: RetryableRequest,
    ) -> Tuple[List[Any], int]:
        """
        Execute a request and follow rel=next Link headers.

        Args:
            request: Request for the first page.

        Returns:
            Tuple of (concatenated items, status of the last page).
        """
        items: List[Any] = []
        page_request = request
        pages = 0

        while True:
            response = await self._send(page_request)
            body = self._decode(page_request, response)
            pages += 1

            if body is None:
                body = []
            if not isinstance(body, list):
                raise MalformedPayloadError(
                    f"Expected a list from {page_request.describe()}, "
                    f"got {type(body).__name__}",
                    source=page_request.url,
                )
            items.extend(body)

            next_url = response.links.get("next", {}).get("url")
            if not next_url:
                break

            if pages >= self.settings.max_pages:
                logger.warning(
                    f"Stopping pagination of {request.describe()} "
                    f"after {pages} pages"
                )
                break

            # The next link already carries the query string
            page_request = replace(page_request, url=next_url, params={})

        logger.debug(
            f"Fetched {len(items)} items in {pages} page(s) from {request.describe()}"
        )
        return items, response.status_code

    async def _send(self, request: RetryableRequest) -> httpx.Response:
        """
        Send a request, retrying transient failures.

        Args:
            request: Request to send.

        Returns:
            Successful (status < 400) response.
        """
        if self._client is None:
            await self.connect()

        url = request.url
        params = request.params
        redirects = 0
        attempt = 0
        last_failure: Optional[TransientUpstreamError] = None

        while attempt < request.max_attempts:
            attempt += 1
            await self.rate_limiter.acquire(request.rate_limit_key)
            self._requests += 1

            try:
                response = await self._client.request(
                    request.method,
                    url,
                    headers=request.headers,
                    params=params or None,
                )
            except httpx.TransportError as e:
                last_failure = TransientUpstreamError(f"{type(e).__name__}: {e}")
            else:
                status = response.status_code

                if status in REDIRECT_STATUS_CODES and "Location" in response.headers:
                    # Dashboard redirects to the organization's shard; not an attempt
                    redirects += 1
                    if redirects > MAX_REDIRECTS:
                        self._failures += 1
                        raise TerminalUpstreamError(
                            request.method, request.url, status, attempt,
                            reason="too many redirects",
                        )
                    location = response.headers["Location"]
                    url = urljoin(url, location)
                    if urlparse(location).query:
                        params = {}
                    attempt -= 1
                    continue

                if status < 400:
                    return response

                if status not in RETRYABLE_STATUS_CODES:
                    self._failures += 1
                    raise TerminalUpstreamError(
                        request.method, request.url, status, attempt,
                        reason=response.text[:200] or None,
                    )

                if status == 429:
                    self._rate_limited += 1

                last_failure = TransientUpstreamError(
                    f"HTTP {status}",
                    status_code=status,
                    retry_after=parse_retry_after(response),
                )

            if attempt >= request.max_attempts:
                break

            delay = self._backoff_delay(attempt, last_failure.retry_after)
            if last_failure.status_code == 429:
                await self.rate_limiter.penalize(request.rate_limit_key, delay)

            self._retries += 1
            logger.warning(
                f"{request.describe()} failed ({last_failure.message}), "
                f"retrying in {delay:.2f}s (attempt {attempt}/{request.max_attempts})"
            )
            await asyncio.sleep(delay)

        self._failures += 1
        raise TerminalUpstreamError(
            request.method,
            request.url,
            last_failure.status_code if last_failure else None,
            attempt,
            reason=last_failure.message if last_failure else None,
        )

    def _backoff_delay(self, attempt: int, retry_after: Optional[float]) -> float:
        """
        Calculate the delay before the next attempt.

        A server-supplied Retry-After wins; otherwise exponential
        backoff plus jitter. The hint and the exponential part are
        both capped at max_backoff.

        Args:
            attempt: Number of the attempt that just failed (1-based).
            retry_after: Server hint in seconds.

        Returns:
            Delay in seconds.
        """
        if retry_after is not None:
            return min(retry_after, self.settings.max_backoff)

        backoff = min(
            self.settings.retry_base_delay * (2 ** (attempt - 1)),
            self.settings.max_backoff,
        )
        return backoff + random.uniform(0, self.settings.retry_jitter)

    def _decode(self, request: RetryableRequest, response: httpx.Response) -> Any:
        """Decode a JSON body; empty bodies decode to None."""
        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise MalformedPayloadError(
                f"Invalid JSON from {request.describe()}: {e}",
                source=request.url,
            ) from e

    def get_stats(self) -> Dict[str, Any]:
        """
        Get client statistics.

        Returns:
            Dictionary of client stats.
        """
        return {
            "connected": self._client is not None,
            "requests": self._requests,
            "retries": self._retries,
            "rate_limited": self._rate_limited,
            "failures": self._failures,
            "rate_limiter": self.rate_limiter.get_stats(),
        }
