"""Structural events produced from the monitor's byte stream.

Only ``START``, ``END`` and ``TEXT`` carry meaning for matching. The other
event types are formatting or metadata noise that the significant-event
filter discards before the matcher ever sees them.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterable, Iterator, Optional, Protocol

from currentcost_bridge.shared.errors import TransportError


class EventType(Enum):
    """Kinds of structural event."""

    START = auto()                   # <name ...>
    END = auto()                     # </name>
    TEXT = auto()                    # Character data with non-whitespace content

    DOCUMENT_START = auto()          # <?xml ...?> declaration
    PROCESSING_INSTRUCTION = auto()  # <?target ...?>
    CDATA = auto()                   # <![CDATA[ ... ]]>
    COMMENT = auto()                 # <!-- ... -->
    WHITESPACE = auto()              # Whitespace-only character data


SIGNIFICANT_TYPES = frozenset({EventType.START, EventType.END, EventType.TEXT})


@dataclass(frozen=True)
class EventPosition:
    """Where an event began in the character stream."""

    line: int = 1
    column: int = 1
    offset: int = 0

    def __post_init__(self) -> None:
        """Validate position values."""
        if self.line < 1:
            raise ValueError("Line number must be >= 1")
        if self.column < 1:
            raise ValueError("Column number must be >= 1")
        if self.offset < 0:
            raise ValueError("Offset must be >= 0")

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Event:
    """A single structural event.

    Attributes:
        type: Event kind
        value: Element name for START/END, content for everything else
        position: Start of the event in the character stream
        attributes: Attributes of a START event
        repaired: True when the event was produced from malformed markup
    """

    type: EventType
    value: str
    position: EventPosition = field(default_factory=EventPosition)
    attributes: Dict[str, str] = field(default_factory=dict, compare=False)
    repaired: bool = False

    @property
    def is_significant(self) -> bool:
        """Check if the matcher should see this event."""
        return self.type in SIGNIFICANT_TYPES

    def is_start(self, name: Optional[str] = None) -> bool:
        """Check for a start tag, optionally with a given name."""
        return self.type is EventType.START and (name is None or self.value == name)

    def is_end(self, name: Optional[str] = None) -> bool:
        """Check for an end tag, optionally with a given name."""
        return self.type is EventType.END and (name is None or self.value == name)

    def describe(self) -> str:
        """Short human-readable form for diagnostics."""
        if self.type is EventType.START:
            return f"<{self.value}>"
        if self.type is EventType.END:
            return f"</{self.value}>"
        preview = self.value if len(self.value) <= 40 else self.value[:37] + "..."
        return f"{self.type.name}({preview!r})"

    @classmethod
    def start(cls, name: str, **attributes: str) -> "Event":
        return cls(EventType.START, name, attributes=dict(attributes))

    @classmethod
    def end(cls, name: str) -> "Event":
        return cls(EventType.END, name)

    @classmethod
    def text(cls, content: str) -> "Event":
        return cls(EventType.TEXT, content)


class EventSource(Protocol):
    """Anything producing structural events on demand."""

    def next_event(self) -> Event:
        ...


class IterableEventSource:
    """Event source backed by an in-memory iterable.

    Exhaustion is reported as ``TransportError``, the same way a closed
    serial port is, so a finite source behaves like a dropped connection.
    """

    def __init__(self, events: Iterable[Event]) -> None:
        self._events: Iterator[Event] = iter(events)
        self.consumed = 0

    def next_event(self) -> Event:
        try:
            event = next(self._events)
        except StopIteration:
            raise TransportError("Event source exhausted") from None
        self.consumed += 1
        return event
