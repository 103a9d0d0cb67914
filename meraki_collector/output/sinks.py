"""
Event sinks.

A sink receives the events produced by a collection cycle. Shipping
events to a storage backend is left to the sink implementation.
"""
import asyncio
import json
import logging
import sys
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, TextIO

from ..correlation.event import Event

logger = logging.getLogger(__name__)


class EventSink(ABC):
    """Destination for collected events."""

    @abstractmethod
    async def emit(self, event: Event) -> None:
        """
        Emit a single event.

        Args:
            event: Event to emit.
        """

    async def close(self) -> None:
        """Release sink resources."""


class JsonLinesSink(EventSink):
    """Writes one JSON document per event to a text stream."""

    def __init__(self, stream: Optional[TextIO] = None):
        """
        Initialize the sink.

        Args:
            stream: Output stream, stdout by default.
        """
        self.stream = stream or sys.stdout
        self._lock = asyncio.Lock()
        self._written = 0

    async def emit(self, event: Event) -> None:
        line = json.dumps(event.to_dict(), default=str)
        async with self._lock:
            self.stream.write(line + "\n")
            self.stream.flush()
            self._written += 1

    def get_stats(self) -> Dict[str, Any]:
        return {"written": self._written}


class LoggingSink(EventSink):
    """Logs events at debug level."""

    async def emit(self, event: Event) -> None:
        logger.debug(
            f"Event {event.metricset} for {event.organization_id}: "
            f"{json.dumps(event.to_dict(), default=str)}"
        )


class MemorySink(EventSink):
    """Keeps events in memory."""

    def __init__(self):
        self.events: List[Event] = []

    async def emit(self, event: Event) -> None:
        self.events.append(event)
