"""Significant-event filter and the skip-to-close resync primitive.

This is the only place that reads raw events. Everything above it sees a
stream made solely of start tags, end tags and text.
"""

from typing import Optional

from currentcost_bridge.shared.logging import CorrelationLogger, get_logger

from .events import Event, EventSource, EventType


class SignificantEventFilter:
    """Wrap an event source and hide ignorable events.

    Args:
        source: Raw event source (usually a ``StreamingEventReader``)
        track_nesting: Whether ``skip_to_close`` counts same-named nested
            elements. When False the first matching end tag ends the skip,
            even if it closes a nested element of the same name.
        logger: Logger for per-event debug output
    """

    def __init__(
        self,
        source: EventSource,
        track_nesting: bool = True,
        logger: Optional[CorrelationLogger] = None
    ) -> None:
        self.source = source
        self.track_nesting = track_nesting
        self.logger = logger or get_logger(__name__, None, "event_filter")
        self.discarded = 0

    def next_significant(self) -> Event:
        """Return the next START, END or TEXT event.

        Errors from the source propagate unchanged.
        """
        while True:
            event = self.source.next_event()
            if event.is_significant:
                self.logger.debug(
                    "Read event",
                    extra={"event": event.describe(), "position": str(event.position)}
                )
                return event
            self.discarded += 1

    def skip_to_close(self, name: str) -> int:
        """Consume events up to and including the end tag of ``name``.

        Everything in between is discarded, nested elements included.

        Returns:
            Number of significant events discarded before the end tag
        """
        depth = 0
        skipped = 0
        while True:
            event = self.next_significant()
            if event.type is EventType.END and event.value == name:
                if depth == 0 or not self.track_nesting:
                    self.logger.debug("Closed element", extra={"element": name})
                    return skipped
                depth -= 1
            elif event.type is EventType.START and event.value == name:
                depth += 1
            skipped += 1
