"""Result objects and counters for the telemetry bridge.

This module defines the typed reading forwarded to the sink, the per-message
outcome reported by the session loop, and the metrics the supervisor keeps
across sessions.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Optional


class MessageOutcome(Enum):
    """What happened to one message attempt."""

    FORWARDED = auto()     # Parsed and accepted by the sink
    SKIPPED = auto()       # Unparsable or historical, dropped
    SINK_FAILED = auto()   # Parsed but the sink rejected it


@dataclass(frozen=True)
class PowerReading:
    """Typed readings extracted from one monitor message.

    Attributes:
        total: Whole-house power in watts (channel 1)
        hot_water: Hot-water circuit power in watts (channel 2)
        solar: Solar generation in watts (channel 3)
        time: Device clock as sent, if present
        temperature: Device temperature as sent, if present
    """

    total: int
    hot_water: int
    solar: int
    time: Optional[str] = None
    temperature: Optional[str] = None


@dataclass
class IngestMetrics:
    """Counters for ingestion health, shared across sessions.

    ``markup_recoveries`` and ``replacement_chars`` track serial link quality:
    both rise when the line drops or corrupts bytes.
    """

    messages_parsed: int = 0
    messages_skipped: int = 0
    messages_forwarded: int = 0
    sink_failures: int = 0
    session_restarts: int = 0
    noise_events_discarded: int = 0
    markup_recoveries: int = 0
    replacement_chars: int = 0
    started_at: float = field(default_factory=time.time)

    @property
    def messages_seen(self) -> int:
        """Messages attempted, parsed or not."""
        return self.messages_parsed + self.messages_skipped

    @property
    def skip_rate(self) -> float:
        """Fraction of attempted messages that were skipped."""
        if self.messages_seen == 0:
            return 0.0
        return self.messages_skipped / self.messages_seen

    @property
    def uptime_s(self) -> float:
        """Seconds since these metrics were created."""
        return time.time() - self.started_at

    def record_outcome(self, outcome: MessageOutcome) -> None:
        """Update counters for one message outcome."""
        if outcome is MessageOutcome.SKIPPED:
            self.messages_skipped += 1
            return
        self.messages_parsed += 1
        if outcome is MessageOutcome.FORWARDED:
            self.messages_forwarded += 1
        else:
            self.sink_failures += 1

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot suitable for structured logging."""
        return {
            "messages_parsed": self.messages_parsed,
            "messages_skipped": self.messages_skipped,
            "messages_forwarded": self.messages_forwarded,
            "sink_failures": self.sink_failures,
            "session_restarts": self.session_restarts,
            "noise_events_discarded": self.noise_events_discarded,
            "markup_recoveries": self.markup_recoveries,
            "replacement_chars": self.replacement_chars,
            "skip_rate": round(self.skip_rate, 4),
        }
