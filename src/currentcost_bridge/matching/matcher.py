"""Tag matcher: a recursive-descent interpreter over a grammar tree.

The matcher walks a grammar against the significant-event stream and returns
a flat record of captured fields. Each node is responsible for the inside
and the end of its element, its start having been consumed by the parent;
``SequenceRoot`` is the exception and reads its own start tag.

Any anomaly raises a ``MatchError``. The caller drops that message and calls
``match`` again, which resynchronises at the next top-level start tag.
"""

from typing import Dict, Optional, Sequence

from currentcost_bridge.shared.config import MatcherConfig
from currentcost_bridge.shared.errors import (
    MissingContent,
    StreamOutOfSync,
    UnexpectedEvent,
)
from currentcost_bridge.shared.logging import CorrelationLogger, get_logger
from currentcost_bridge.tokenization.events import EventType
from currentcost_bridge.tokenization.filter import SignificantEventFilter

from .grammar import GrammarNode, LeafCapture, SequenceNode, SequenceRoot

Record = Dict[str, str]


class TagMatcher:
    """Match grammar trees against a filtered event stream.

    Args:
        events: Significant-event filter over the live stream
        config: Matcher policy switches
        logger: Logger for match diagnostics
    """

    def __init__(
        self,
        events: SignificantEventFilter,
        config: Optional[MatcherConfig] = None,
        logger: Optional[CorrelationLogger] = None
    ) -> None:
        self.events = events
        self.config = config or MatcherConfig()
        self.logger = logger or get_logger(__name__, None, "tag_matcher")

    def match(self, node: GrammarNode) -> Record:
        """Match ``node`` and return the captured fields.

        Raises:
            UnexpectedEvent: A start tag was required but something else came
            MissingContent: A leaf held no text
            StreamOutOfSync: A sequence met text or an end tag between children
            TransportError: The underlying source failed
        """
        if isinstance(node, SequenceRoot):
            return self._match_root(node)
        if isinstance(node, SequenceNode):
            return self._match_sequence(node.name, node.children)
        if isinstance(node, LeafCapture):
            return self._match_leaf(node)
        raise TypeError(f"Unknown grammar node: {node!r}")

    def _match_root(self, node: SequenceRoot) -> Record:
        event = self.events.next_significant()
        if event.type is not EventType.START:
            raise UnexpectedEvent(
                f"Expected <{node.name}>, got {event.describe()}",
                element=node.name,
                event=event
            )
        if event.value != node.name:
            if self.config.drain_wrong_root:
                # Leave the stream at a known boundary for the next attempt
                self.events.skip_to_close(event.value)
            raise UnexpectedEvent(
                f"Wrong start tag: expected <{node.name}>, got <{event.value}>",
                element=node.name,
                event=event
            )
        return self._match_sequence(node.name, node.children)

    def _match_sequence(self, name: str, children: Sequence[GrammarNode]) -> Record:
        result: Record = {}
        for child in children:
            self.logger.debug(
                "Looking for a match",
                extra={"element": child.name, "parent": name}
            )
            while True:
                event = self.events.next_significant()
                if event.type is not EventType.START:
                    raise StreamOutOfSync(
                        f"Event stream out of sync inside <{name}>: expected "
                        f"<{child.name}>, got {event.describe()}",
                        element=child.name,
                        event=event
                    )
                if event.value == child.name:
                    self.logger.debug("Matched", extra={"element": child.name})
                    result.update(self.match(child))
                    break
                skipped = self.events.skip_to_close(event.value)
                self.logger.debug(
                    "Skipped unrecognised element",
                    extra={
                        "element": event.value,
                        "parent": name,
                        "events_skipped": skipped,
                    }
                )

        self.events.skip_to_close(name)
        return result

    def _match_leaf(self, node: LeafCapture) -> Record:
        event = self.events.next_significant()
        if event.type is not EventType.TEXT:
            raise MissingContent(
                f"Tag contents not found for <{node.name}>: got {event.describe()}",
                element=node.name,
                event=event
            )
        result = {node.field_key: event.value}
        self.events.skip_to_close(node.name)
        return result
