"""
Collector exceptions.

Errors raised by the Dashboard API invoker, the fetchers, and the
collection orchestrator.
"""
from typing import Any, Dict, Optional


class CollectorError(Exception):
    """
    Base exception for all collector errors.

    All collector exceptions inherit from this class so callers can
    isolate failures per organization with a single except clause.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for reporting."""
        return {
            'error': self.code,
            'message': self.message,
            'details': self.details
        }


class TransientUpstreamError(CollectorError):
    """
    Raised for a retryable upstream failure (HTTP 429, 5xx, transport error).

    Handled inside the invoker; only visible to callers once retries are
    exhausted, wrapped in a TerminalUpstreamError.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None
    ):
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(
            message=message,
            code='TRANSIENT_UPSTREAM',
            details={'status_code': status_code, 'retry_after': retry_after}
        )


class TerminalUpstreamError(CollectorError):
    """Raised when a request fails permanently or exhausts its attempts."""

    def __init__(
        self,
        method: str,
        url: str,
        status_code: Optional[int] = None,
        attempts: int = 1,
        reason: Optional[str] = None
    ):
        self.method = method
        self.url = url
        self.status_code = status_code
        self.attempts = attempts
        self.reason = reason

        observed = f"HTTP {status_code}" if status_code is not None else "no response"
        msg = f"{method} {url} failed after {attempts} attempt(s): {observed}"
        if reason:
            msg = f"{msg} ({reason})"

        super().__init__(
            message=msg,
            code='TERMINAL_UPSTREAM',
            details={
                'method': method,
                'url': url,
                'status_code': status_code,
                'attempts': attempts,
                'reason': reason,
            }
        )


class MalformedPayloadError(CollectorError):
    """Raised when an upstream payload cannot be decoded or parsed."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        super().__init__(
            message=message,
            code='MALFORMED_PAYLOAD',
            details={'source': source}
        )


class CollectionCycleError(CollectorError):
    """Aggregate error for a cycle in which one or more organizations failed."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        failed = ", ".join(sorted(errors))
        super().__init__(
            message=f"Collection failed for {len(errors)} organization(s): {failed}",
            code='COLLECTION_CYCLE_FAILED',
            details={'errors': errors}
        )
