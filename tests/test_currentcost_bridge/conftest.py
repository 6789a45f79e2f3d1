"""Shared fixtures for bridge tests."""

import io
from typing import Callable, List, Optional, Tuple

import pytest

from currentcost_bridge.api.session import SessionLoop
from currentcost_bridge.character import CharacterStream
from currentcost_bridge.matching import TagMatcher
from currentcost_bridge.shared.config import MatcherConfig, ReaderConfig
from currentcost_bridge.shared.errors import SinkError
from currentcost_bridge.tokenization import SignificantEventFilter, StreamingEventReader

GOOD_MESSAGE = (
    "<msg><time>T</time><tmpr>X</tmpr>"
    "<ch1><watts>100</watts></ch1>"
    "<ch2><watts>20</watts></ch2>"
    "<ch3><watts>5</watts></ch3></msg>"
)

GOOD_RECORD = {
    "time": "T",
    "temperature": "X",
    "total": "100",
    "hot_water": "20",
    "solar": "5",
}


def build_message(
    total: str = "100",
    hot_water: str = "20",
    solar: str = "5",
    time: str = "T",
    tmpr: str = "X"
) -> str:
    return (
        f"<msg><time>{time}</time><tmpr>{tmpr}</tmpr>"
        f"<ch1><watts>{total}</watts></ch1>"
        f"<ch2><watts>{hot_water}</watts></ch2>"
        f"<ch3><watts>{solar}</watts></ch3></msg>"
    )


class RecordingSink:
    """Sink that records inserts and can fail on demand."""

    def __init__(self, failures: int = 0) -> None:
        self.calls: List[Tuple[int, int, int]] = []
        self.failures = failures

    def insert(self, total: int, hot_water: int, solar: int) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise SinkError("Connection refused")
        self.calls.append((total, hot_water, solar))


def filter_for(
    text: str,
    track_nesting: bool = True,
    reader_config: Optional[ReaderConfig] = None
) -> SignificantEventFilter:
    chars = CharacterStream(io.BytesIO(text.encode("utf-8")))
    reader = StreamingEventReader(chars, reader_config)
    return SignificantEventFilter(reader, track_nesting=track_nesting)


@pytest.fixture
def make_matcher() -> Callable[..., TagMatcher]:
    """Factory for a matcher reading ``text`` through the full pipeline."""
    def _make(text: str, **matcher_options: bool) -> TagMatcher:
        config = MatcherConfig(**matcher_options)
        return TagMatcher(filter_for(text, track_nesting=config.track_nesting), config)
    return _make


@pytest.fixture
def make_session() -> Callable[..., SessionLoop]:
    """Factory for a session loop reading ``text`` into ``sink``."""
    def _make(text: str, sink: RecordingSink, **matcher_options: bool) -> SessionLoop:
        config = MatcherConfig(**matcher_options)
        matcher = TagMatcher(filter_for(text, track_nesting=config.track_nesting), config)
        return SessionLoop(matcher, sink)
    return _make


@pytest.fixture
def good_message() -> str:
    return GOOD_MESSAGE


@pytest.fixture
def good_record() -> dict:
    return dict(GOOD_RECORD)


@pytest.fixture
def message() -> Callable[..., str]:
    """Builder for a well-formed monitor message with custom values."""
    return build_message


@pytest.fixture
def sink_factory() -> Callable[..., RecordingSink]:
    return RecordingSink
