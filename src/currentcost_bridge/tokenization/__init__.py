"""Tokenization layer for the telemetry bridge.

This module turns the monitor's character stream into structural events and
filters out the noise the matcher does not care about.

Key Components:
    StreamingEventReader: Never-fail state machine producing events on demand
    Event: A single structural event with position information
    EventType: Start, end, text and the ignorable event kinds
    SignificantEventFilter: Hides ignorable events and provides skip-to-close
"""

from .events import (
    Event,
    EventPosition,
    EventSource,
    EventType,
    IterableEventSource,
    SIGNIFICANT_TYPES,
)
from .filter import SignificantEventFilter
from .reader import ReaderState, StreamingEventReader, decode_entities

__all__ = [
    "Event",
    "EventPosition",
    "EventSource",
    "EventType",
    "IterableEventSource",
    "SIGNIFICANT_TYPES",
    "SignificantEventFilter",
    "ReaderState",
    "StreamingEventReader",
    "decode_entities",
]
