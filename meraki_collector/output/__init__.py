"""
Event output module.

Provides the sinks collected events are handed to.
"""
from .sinks import EventSink, JsonLinesSink, LoggingSink, MemorySink

__all__ = [
    "EventSink",
    "JsonLinesSink",
    "LoggingSink",
    "MemorySink",
]
