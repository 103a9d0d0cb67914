"""
Collection window sizing.

Time-series endpoints are queried with a timespan ending at the
collection instant. The timespan is never shorter than the collection
period plus a margin for scheduler jitter, and samples are accepted only
inside the half-open interval that starts where the previous cycle
ended. Consecutive cycles therefore cover every sample exactly once.

The timespan is capped at the longest value the API accepts. After an
outage longer than that, the unrecoverable part of the gap is skipped
with a warning.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MARGIN = 10.0
# Longest timespan accepted by the Dashboard time-series endpoints
DEFAULT_MAX_WINDOW = 300.0


@dataclass(frozen=True)
class CollectionWindow:
    """
    Accepted sample interval (start, end] and the timespan to request.

    ``grace_start`` opens a second interval (grace_start, start] for
    samples the API publishes late. Samples in it may already have been
    collected by the previous window, so callers must deduplicate them.
    """
    start: datetime
    end: datetime
    timespan: float
    grace_start: Optional[datetime] = None

    def contains(self, timestamp: datetime) -> bool:
        """Check if a sample timestamp falls inside the window."""
        return self.start < timestamp <= self.end

    def in_grace(self, timestamp: datetime) -> bool:
        """Check if a sample timestamp falls in the late-arrival interval."""
        if self.grace_start is None:
            return False
        return self.grace_start < timestamp <= self.start

    @property
    def timespan_seconds(self) -> int:
        """Timespan rounded up to whole seconds for the API."""
        return int(math.ceil(self.timespan))

    @property
    def duration(self) -> float:
        """Length of the accepted interval in seconds."""
        return (self.end - self.start).total_seconds()


def window_timespan(period: float, margin: float = DEFAULT_WINDOW_MARGIN) -> float:
    """
    Minimum timespan to request for a collection period.

    Args:
        period: Collection period in seconds.
        margin: Jitter margin in seconds.

    Returns:
        Timespan in seconds.
    """
    return period + margin


class WindowPlanner:
    """
    Plans consecutive collection windows for one organization and metricset.

    The end of a window is committed only after the fetch succeeded, so
    the next window re-covers the interval of a failed cycle.
    """

    def __init__(
        self,
        period: float,
        margin: float = DEFAULT_WINDOW_MARGIN,
        max_window: Optional[float] = DEFAULT_MAX_WINDOW,
        late_grace: float = 0.0,
    ):
        """
        Initialize the window planner.

        Args:
            period: Collection period in seconds.
            margin: Jitter margin in seconds.
            max_window: Longest timespan the API accepts (None = no limit).
            late_grace: Seconds before the window start in which late
                samples are still accepted (capped at the margin).
        """
        self.period = period
        self.margin = margin
        self.max_window = max_window
        self.late_grace = min(late_grace, margin)
        self._last_end: Optional[datetime] = None
        # Start of the first window, kept until a window is committed
        self._origin: Optional[datetime] = None

    def plan(self, now: datetime) -> CollectionWindow:
        """
        Plan the window for a cycle collected at ``now``.

        Args:
            now: Collection instant (timezone-aware).

        Returns:
            Collection window ending at ``now``.
        """
        start = self._last_end if self._last_end is not None else self._origin

        if start is not None and start >= now:
            logger.warning(
                f"Collection instant {now.isoformat()} is not after the "
                f"previous window start {start.isoformat()}, resetting"
            )
            self._last_end = None
            start = None

        if start is None:
            timespan = self._limit(window_timespan(self.period, self.margin))
            self._origin = now - timedelta(seconds=timespan)
            return CollectionWindow(start=self._origin, end=now, timespan=timespan)

        elapsed = (now - start).total_seconds()
        timespan = self._limit(max(self.period, elapsed) + self.margin)

        earliest = now - timedelta(seconds=timespan)
        if start < earliest:
            logger.warning(
                f"Samples between {start.isoformat()} and {earliest.isoformat()} "
                f"cannot be recovered, windows are limited to {self.max_window:g}s"
            )
            return CollectionWindow(start=earliest, end=now, timespan=timespan)

        grace_start = None
        if self._last_end is not None and self.late_grace > 0:
            grace_start = max(start - timedelta(seconds=self.late_grace), earliest)

        return CollectionWindow(
            start=start,
            end=now,
            timespan=timespan,
            grace_start=grace_start,
        )

    def _limit(self, timespan: float) -> float:
        if self.max_window is None:
            return timespan
        return min(timespan, self.max_window)

    def commit(self, window: CollectionWindow) -> None:
        """Record a successfully collected window."""
        self._last_end = window.end
        self._origin = None

    @property
    def last_end(self) -> Optional[datetime]:
        """End of the last committed window."""
        return self._last_end
