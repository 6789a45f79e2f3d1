"""Tests for the significant-event filter and skip-to-close."""

import pytest

from currentcost_bridge.shared.errors import TransportError
from currentcost_bridge.tokenization import (
    Event,
    EventType,
    IterableEventSource,
    SignificantEventFilter,
)


def noise(event_type: EventType) -> Event:
    return Event(event_type, "")


class TestNextSignificant:
    """Test noise filtering."""

    def test_discards_noise(self):
        source = IterableEventSource([
            noise(EventType.DOCUMENT_START),
            noise(EventType.COMMENT),
            Event.start("a"),
            noise(EventType.WHITESPACE),
            noise(EventType.CDATA),
            noise(EventType.PROCESSING_INSTRUCTION),
            Event.text("x"),
        ])
        events = SignificantEventFilter(source)

        assert events.next_significant() == Event.start("a")
        assert events.next_significant() == Event.text("x")
        assert events.discarded == 5

    def test_source_errors_propagate(self):
        events = SignificantEventFilter(IterableEventSource([noise(EventType.COMMENT)]))

        with pytest.raises(TransportError):
            events.next_significant()


class TestSkipToClose:
    """Test skipping to an element's end tag."""

    def test_skips_nested_content(self):
        source = IterableEventSource([
            Event.start("b"),
            Event.text("1"),
            Event.end("b"),
            Event.end("a"),
            Event.start("next"),
        ])
        events = SignificantEventFilter(source)

        skipped = events.skip_to_close("a")

        assert skipped == 3
        assert events.next_significant() == Event.start("next")

    def test_end_tag_first(self):
        events = SignificantEventFilter(IterableEventSource([Event.end("a")]))
        assert events.skip_to_close("a") == 0

    def test_same_named_nesting_tracked(self):
        """Test that a nested element of the same name does not end the skip."""
        source = IterableEventSource([
            Event.start("x"),
            Event.text("inner"),
            Event.end("x"),
            Event.text("tail"),
            Event.end("x"),
            Event.start("after"),
        ])
        events = SignificantEventFilter(source, track_nesting=True)

        events.skip_to_close("x")

        assert events.next_significant() == Event.start("after")

    def test_same_named_nesting_untracked(self):
        """Test that the name-only mode stops at the first matching end tag."""
        source = IterableEventSource([
            Event.start("x"),
            Event.text("inner"),
            Event.end("x"),
            Event.text("tail"),
            Event.end("x"),
        ])
        events = SignificantEventFilter(source, track_nesting=False)

        events.skip_to_close("x")

        assert events.next_significant() == Event.text("tail")

    def test_noise_inside_skipped_element_counts_as_discarded(self):
        source = IterableEventSource([
            noise(EventType.COMMENT),
            Event.end("a"),
        ])
        events = SignificantEventFilter(source)

        assert events.skip_to_close("a") == 0
        assert events.discarded == 1

    def test_exhaustion_while_skipping(self):
        events = SignificantEventFilter(IterableEventSource([Event.start("b")]))

        with pytest.raises(TransportError):
            events.skip_to_close("a")
