"""Streaming event reader with a never-fail state machine.

This module turns a live character stream into structural events one
character at a time. The reader never raises on malformed markup: anything
it cannot make sense of is handed on as a repaired ``TEXT`` event, which the
matcher treats as a desynchronisation and recovers from. Only failures of
the underlying byte source propagate.

Character data is held until the next start or end tag, so comments,
processing instructions and CDATA sections inside a value are reported as
noise without splitting the value around them.
"""

import logging
import re
from collections import deque
from enum import Enum, auto
from typing import Deque, Dict, Optional

from currentcost_bridge.character import CharacterStream
from currentcost_bridge.shared.config import ReaderConfig
from currentcost_bridge.shared.logging import CorrelationLogger, get_logger

from .events import Event, EventPosition, EventType

COMMENT_OPEN = "<!--"
CDATA_OPEN = "<![CDATA["
UNICODE_START_OFFSET = 0x80

_PREDEFINED_ENTITIES = {
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "apos": "'",
}
_ENTITY_PATTERN = re.compile(r"&(#x[0-9a-fA-F]+|#\d+|[A-Za-z]+);")


class ReaderState(Enum):
    """State machine states for event reading."""

    TEXT_CONTENT = auto()        # Between tags
    TAG_OPENING = auto()         # Just read <
    TAG_NAME = auto()            # Reading start tag name
    ATTRIBUTES = auto()          # Inside start tag after the name
    ATTR_VALUE_QUOTED = auto()   # Inside a quoted attribute value
    ATTR_VALUE_UNQUOTED = auto() # Inside an unquoted attribute value
    SELF_CLOSING = auto()        # Read / inside a start tag
    TAG_CLOSING = auto()         # Just read </
    CLOSING_TAG_NAME = auto()    # Reading end tag name
    MARKUP_DECLARATION = auto()  # Read <! and deciding comment vs CDATA
    COMMENT_CONTENT = auto()     # Inside <!-- ... -->
    CDATA_CONTENT = auto()       # Inside <![CDATA[ ... ]]>
    PI_CONTENT = auto()          # Inside <? ... ?>


def decode_entities(text: str) -> str:
    """Replace predefined and numeric character references.

    Unknown or malformed references are left untouched.
    """
    def _replace(match: "re.Match[str]") -> str:
        ref = match.group(1)
        try:
            if ref.startswith("#x"):
                return chr(int(ref[2:], 16))
            if ref.startswith("#"):
                return chr(int(ref[1:]))
        except (ValueError, OverflowError):
            return match.group(0)
        return _PREDEFINED_ENTITIES.get(ref, match.group(0))

    if "&" not in text:
        return text
    return _ENTITY_PATTERN.sub(_replace, text)


class StreamingEventReader:
    """Produce structural events from a character stream on demand.

    Args:
        chars: Character stream to read from
        config: Reader limits
        logger: Logger for recovery diagnostics
    """

    def __init__(
        self,
        chars: CharacterStream,
        config: Optional[ReaderConfig] = None,
        logger: Optional[CorrelationLogger] = None
    ) -> None:
        self.chars = chars
        self.config = config or ReaderConfig()
        self.logger = logger or get_logger(__name__, None, "event_reader")

        self.recovery_count = 0
        self._pending: Deque[Event] = deque()
        self._position = EventPosition(1, 1, 0)
        self._text = ""
        self._text_start = self._position
        self._text_repaired = False
        self._reset_state()

    def _reset_state(self) -> None:
        """Return to text state with empty markup buffers.

        Pending character data survives: it is only flushed by the next
        start or end tag, so noise inside a value does not split it.
        """
        self.state = ReaderState.TEXT_CONTENT
        self._token_start = self._position
        self._raw = ""
        self._name = ""
        self._attributes: Dict[str, str] = {}
        self._attr_name = ""
        self._attr_value = ""
        self._awaiting_value = False
        self._quote_char: Optional[str] = None

    def next_event(self) -> Event:
        """Return the next event, blocking until one is complete.

        Raises:
            TransportError: The character stream's source failed
        """
        while not self._pending:
            char = self.chars.read_char()
            self._process_character(char)
            self._update_position(char)
        return self._pending.popleft()

    def _process_character(self, char: str) -> None:
        """Process a single character through the state machine."""
        if self.state == ReaderState.TEXT_CONTENT:
            self._process_text_content(char)
        elif self.state == ReaderState.TAG_OPENING:
            self._process_tag_opening(char)
        elif self.state == ReaderState.TAG_NAME:
            self._process_tag_name(char)
        elif self.state == ReaderState.ATTRIBUTES:
            self._process_attributes(char)
        elif self.state == ReaderState.ATTR_VALUE_QUOTED:
            self._process_attr_value_quoted(char)
        elif self.state == ReaderState.ATTR_VALUE_UNQUOTED:
            self._process_attr_value_unquoted(char)
        elif self.state == ReaderState.SELF_CLOSING:
            self._process_self_closing(char)
        elif self.state == ReaderState.TAG_CLOSING:
            self._process_tag_closing(char)
        elif self.state == ReaderState.CLOSING_TAG_NAME:
            self._process_closing_tag_name(char)
        elif self.state == ReaderState.MARKUP_DECLARATION:
            self._process_markup_declaration(char)
        elif self.state == ReaderState.COMMENT_CONTENT:
            self._process_delimited(char, "-->", EventType.COMMENT, len(COMMENT_OPEN))
        elif self.state == ReaderState.CDATA_CONTENT:
            self._process_delimited(char, "]]>", EventType.CDATA, len(CDATA_OPEN))
        elif self.state == ReaderState.PI_CONTENT:
            self._process_pi_content(char)
        else:
            self._recover(char, f"Unknown state: {self.state}")
            return

        if self.state != ReaderState.TEXT_CONTENT:
            self._enforce_token_limit()

    def _update_position(self, char: str) -> None:
        """Advance line, column and offset past ``char``."""
        if char == "\n":
            self._position = EventPosition(
                self._position.line + 1, 1, self._position.offset + 1
            )
        else:
            self._position = EventPosition(
                self._position.line,
                self._position.column + 1,
                self._position.offset + 1
            )

    # -- text -----------------------------------------------------------

    def _process_text_content(self, char: str) -> None:
        """Accumulate character data; a tag opening does not end it."""
        if char == "<":
            self._begin_markup(char)
            return

        if not self._text:
            self._text_start = self._position
        self._text += char
        if len(self._text) >= self.config.max_token_length:
            self._text_repaired = True
            self._flush_text()

    def _flush_text(self) -> None:
        """Emit pending character data as TEXT or WHITESPACE."""
        if not self._text:
            return
        if self._text.strip():
            self._emit(
                EventType.TEXT,
                decode_entities(self._text),
                repaired=self._text_repaired,
                position=self._text_start
            )
        else:
            self._emit(EventType.WHITESPACE, self._text, position=self._text_start)
        self._text = ""
        self._text_repaired = False

    def _begin_markup(self, char: str) -> None:
        """Start collecting a new tag at the current position."""
        self._token_start = self._position
        self._raw = char
        self._name = ""
        self._attributes = {}
        self._attr_name = ""
        self._attr_value = ""
        self._awaiting_value = False
        self._quote_char = None
        self.state = ReaderState.TAG_OPENING

    # -- tags -----------------------------------------------------------

    def _process_tag_opening(self, char: str) -> None:
        """Decide what kind of markup follows ``<``."""
        self._raw += char
        if char == "/":
            self.state = ReaderState.TAG_CLOSING
        elif char == "!":
            self.state = ReaderState.MARKUP_DECLARATION
        elif char == "?":
            self.state = ReaderState.PI_CONTENT
        elif self._is_name_start_char(char):
            self._name = char
            self.state = ReaderState.TAG_NAME
        else:
            self._raw = self._raw[:-1]
            self._recover(char, f"Invalid tag start character: {char!r}")

    def _process_tag_name(self, char: str) -> None:
        """Read a start tag name."""
        if self._is_name_char(char):
            self._raw += char
            self._name += char
        elif char.isspace():
            self._raw += char
            self.state = ReaderState.ATTRIBUTES
        elif char == ">":
            self._emit_start()
        elif char == "/":
            self._raw += char
            self.state = ReaderState.SELF_CLOSING
        else:
            self._recover(char, f"Invalid character in tag name: {char!r}")

    def _process_attributes(self, char: str) -> None:
        """Read attributes loosely; the matcher never looks at them."""
        if self._awaiting_value:
            if char in ('"', "'"):
                self._raw += char
                self._quote_char = char
                self._attr_value = ""
                self.state = ReaderState.ATTR_VALUE_QUOTED
                return
            if char.isspace():
                self._raw += char
                return
            if self._is_name_char(char):
                self._raw += char
                self._attr_value = char
                self.state = ReaderState.ATTR_VALUE_UNQUOTED
                return
            self._recover(char, f"Invalid attribute value start: {char!r}")
            return

        if self._is_name_char(char) and (self._attr_name or self._is_name_start_char(char)):
            self._raw += char
            self._attr_name += char
        elif char == "=" and self._attr_name:
            self._raw += char
            self._awaiting_value = True
        elif char.isspace():
            self._raw += char
            self._store_attribute_without_value()
        elif char == ">":
            self._store_attribute_without_value()
            self._emit_start()
        elif char == "/":
            self._raw += char
            self._store_attribute_without_value()
            self.state = ReaderState.SELF_CLOSING
        else:
            self._recover(char, f"Invalid character in attributes: {char!r}")

    def _store_attribute_without_value(self) -> None:
        if self._attr_name:
            self._attributes[self._attr_name] = ""
            self._attr_name = ""

    def _store_attribute(self) -> None:
        self._attributes[self._attr_name] = decode_entities(self._attr_value)
        self._attr_name = ""
        self._attr_value = ""
        self._awaiting_value = False

    def _process_attr_value_quoted(self, char: str) -> None:
        """Read a quoted attribute value."""
        self._raw += char
        if char == self._quote_char:
            self._quote_char = None
            self._store_attribute()
            self.state = ReaderState.ATTRIBUTES
        else:
            self._attr_value += char

    def _process_attr_value_unquoted(self, char: str) -> None:
        """Read an unquoted attribute value."""
        if char.isspace() or char in (">", "/"):
            self._store_attribute()
            self.state = ReaderState.ATTRIBUTES
            self._process_attributes(char)
        elif char == "<":
            self._recover(char, "Tag truncated inside attribute value")
        else:
            self._raw += char
            self._attr_value += char

    def _process_self_closing(self, char: str) -> None:
        """Expect ``>`` after ``/`` in a start tag."""
        if char == ">":
            name = self._name
            self._emit_start()
            self._emit(EventType.END, name)
        else:
            self._recover(char, f"Expected > after / in <{self._name}")

    def _process_tag_closing(self, char: str) -> None:
        """Read the first character after ``</``."""
        if self._is_name_start_char(char):
            self._raw += char
            self._name = char
            self.state = ReaderState.CLOSING_TAG_NAME
        else:
            self._recover(char, f"Invalid character after </: {char!r}")

    def _process_closing_tag_name(self, char: str) -> None:
        """Read an end tag name; trailing whitespace is tolerated."""
        if char == ">":
            self._flush_text()
            self._emit(EventType.END, self._name)
            self._reset_state()
        elif char.isspace():
            self._raw += char
        elif self._is_name_char(char) and not self._raw[-1].isspace():
            self._raw += char
            self._name += char
        else:
            self._recover(char, f"Invalid character in closing tag: {char!r}")

    def _emit_start(self) -> None:
        self._flush_text()
        self._emit(EventType.START, self._name, attributes=dict(self._attributes))
        self._reset_state()

    # -- comments, CDATA, processing instructions -----------------------

    def _process_markup_declaration(self, char: str) -> None:
        """Tell ``<!--`` apart from ``<![CDATA[``."""
        self._raw += char
        if self._raw == COMMENT_OPEN:
            self.state = ReaderState.COMMENT_CONTENT
        elif self._raw == CDATA_OPEN:
            self.state = ReaderState.CDATA_CONTENT
        elif not (COMMENT_OPEN.startswith(self._raw) or CDATA_OPEN.startswith(self._raw)):
            self._raw = self._raw[:-1]
            self._recover(char, "Unsupported markup declaration")

    def _process_delimited(
        self,
        char: str,
        terminator: str,
        event_type: EventType,
        opener_length: int
    ) -> None:
        """Collect content until ``terminator`` and emit it as ``event_type``."""
        self._raw += char
        if self._raw.endswith(terminator) and len(self._raw) >= opener_length + len(terminator):
            content = self._raw[opener_length:-len(terminator)]
            self._emit(event_type, content)
            self._reset_state()

    def _process_pi_content(self, char: str) -> None:
        """Collect a processing instruction; ``<?xml`` marks a document start."""
        self._raw += char
        if self._raw.endswith("?>") and len(self._raw) >= 4:
            content = self._raw[2:-2]
            target = content.split(None, 1)[0] if content.strip() else ""
            if target.lower() == "xml":
                self._emit(EventType.DOCUMENT_START, content)
            else:
                self._emit(EventType.PROCESSING_INSTRUCTION, content)
            self._reset_state()

    # -- recovery -------------------------------------------------------

    def _recover(self, char: str, reason: str) -> None:
        """Abandon the current markup and hand it on as text.

        A ``<`` starts a fresh tag so that a truncated tag never swallows the
        well-formed one after it.
        """
        self.recovery_count += 1
        if self.logger.is_enabled_for(logging.DEBUG):
            self.logger.debug(
                "Recovering from malformed markup",
                extra={
                    "reason": reason,
                    "raw": self._raw,
                    "position": str(self._token_start),
                }
            )

        raw = self._raw
        start = self._token_start
        self._reset_state()
        if char == "<":
            self._append_repaired_text(raw, start)
            self._begin_markup(char)
        else:
            self._append_repaired_text(raw + char, start)

    def _enforce_token_limit(self) -> None:
        """Flush markup that has grown past the configured limit."""
        if len(self._raw) < self.config.max_token_length:
            return
        self.recovery_count += 1
        self.logger.warning(
            "Markup exceeded maximum token length, flushing as text",
            extra={
                "state": self.state.name,
                "length": len(self._raw),
                "position": str(self._token_start),
            }
        )
        raw = self._raw
        start = self._token_start
        self._reset_state()
        self._append_repaired_text(raw, start)
        self._flush_text()

    def _append_repaired_text(self, text: str, start: EventPosition) -> None:
        if not self._text:
            self._text_start = start
        self._text += text
        self._text_repaired = True

    # -- helpers --------------------------------------------------------

    def _emit(
        self,
        event_type: EventType,
        value: str,
        attributes: Optional[Dict[str, str]] = None,
        repaired: bool = False,
        position: Optional[EventPosition] = None
    ) -> None:
        """Queue an event, positioned at the current token unless given."""
        self._pending.append(
            Event(
                type=event_type,
                value=value,
                position=position if position is not None else self._token_start,
                attributes=attributes or {},
                repaired=repaired
            )
        )

    def _is_name_start_char(self, char: str) -> bool:
        """Check if character can start an XML name."""
        return (char.isalpha() or
                char == "_" or
                char == ":" or
                ord(char) >= UNICODE_START_OFFSET)

    def _is_name_char(self, char: str) -> bool:
        """Check if character can be part of an XML name."""
        return (self._is_name_start_char(char) or
                char.isdigit() or
                char in ".-")
