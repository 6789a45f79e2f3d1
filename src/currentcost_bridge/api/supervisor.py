"""Supervisor: the outermost, self-healing loop.

Every session gets a freshly opened transport and a freshly built pipeline.
Whatever escapes a session is logged and the whole session is rebuilt from
scratch. With the default retry policy this repeats forever with no delay.
"""

import time
from typing import Callable, Optional

from currentcost_bridge.character import ByteSource, CharacterStream
from currentcost_bridge.matching import MONITOR_GRAMMAR, GrammarNode, TagMatcher
from currentcost_bridge.shared.config import BridgeConfig
from currentcost_bridge.shared.errors import RestartLimitExceeded
from currentcost_bridge.shared.logging import CorrelationLogger, get_logger
from currentcost_bridge.shared.result import IngestMetrics
from currentcost_bridge.tokenization import SignificantEventFilter, StreamingEventReader

from .session import SessionLoop
from .sink import PowerSink

TransportFactory = Callable[[], ByteSource]


class Supervisor:
    """Run sessions back to back, restarting after any failure.

    Args:
        transport_factory: Opens a new byte source; may raise
        sink: Destination for readings, shared by all sessions
        config: Bridge configuration (retry policy, reader and matcher)
        grammar: Message grammar
        metrics: Counters kept across sessions
        sleep: Delay function used for backoff
        logger: Base logger; each session binds its own correlation ID
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        sink: PowerSink,
        config: Optional[BridgeConfig] = None,
        grammar: GrammarNode = MONITOR_GRAMMAR,
        metrics: Optional[IngestMetrics] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[CorrelationLogger] = None
    ) -> None:
        self.transport_factory = transport_factory
        self.sink = sink
        self.config = config or BridgeConfig()
        self.grammar = grammar
        self.metrics = metrics if metrics is not None else IngestMetrics()
        self.sleep = sleep
        self.logger = logger or get_logger(__name__, None, "supervisor")
        self.sessions_started = 0

    def build_session(self, source: ByteSource, correlation_id: str) -> SessionLoop:
        """Assemble the parsing pipeline over ``source``."""
        chars = CharacterStream(
            source,
            encoding=self.config.reader.encoding,
            chunk_size=self.config.serial.read_chunk_size,
        )
        reader = StreamingEventReader(
            chars,
            self.config.reader,
            get_logger("currentcost_bridge.tokenization.reader", correlation_id, "event_reader"),
        )
        events = SignificantEventFilter(
            reader,
            track_nesting=self.config.matcher.track_nesting,
            logger=get_logger("currentcost_bridge.tokenization.filter", correlation_id, "event_filter"),
        )
        matcher = TagMatcher(
            events,
            self.config.matcher,
            get_logger("currentcost_bridge.matching.matcher", correlation_id, "tag_matcher"),
        )
        return SessionLoop(
            matcher,
            self.sink,
            grammar=self.grammar,
            metrics=self.metrics,
            logger=get_logger("currentcost_bridge.api.session", correlation_id, "session"),
        )

    def run_session(self, max_messages: Optional[int] = None) -> int:
        """Open a transport and ingest messages until something fails.

        Returns:
            Number of message attempts, when ``max_messages`` bounds the run
        """
        self.sessions_started += 1
        correlation_id = f"session-{self.sessions_started}"
        logger = self.logger.bind(correlation_id=correlation_id)

        logger.info("Starting session")
        source = self.transport_factory()
        session: Optional[SessionLoop] = None
        try:
            session = self.build_session(source, correlation_id)
            return session.run(max_messages)
        finally:
            if session is not None:
                self._record_link_health(session)
            self._close_source(source, logger)

    def _record_link_health(self, session: SessionLoop) -> None:
        events = session.matcher.events
        self.metrics.noise_events_discarded += events.discarded
        reader = events.source
        if isinstance(reader, StreamingEventReader):
            self.metrics.markup_recoveries += reader.recovery_count
            self.metrics.replacement_chars += reader.chars.position.replacement_chars

    def _close_source(self, source: ByteSource, logger: CorrelationLogger) -> None:
        close = getattr(source, "close", None)
        if not callable(close):
            return
        try:
            close()
        except OSError as e:
            logger.warning(f"Failed to close transport: {e}")

    def run(self) -> None:
        """Run sessions until the retry policy gives up.

        With the default policy this never returns.

        Raises:
            RestartLimitExceeded: A finite ``max_restarts`` was exhausted
        """
        policy = self.config.retry
        restarts = 0
        while True:
            try:
                self.run_session()
                last_error: Optional[Exception] = None
            except Exception as e:
                last_error = e
                self.logger.error(
                    f"Session failed, restarting: {e}",
                    extra={
                        "error_type": type(e).__name__,
                        "restarts": restarts,
                        "metrics": self.metrics.to_dict(),
                    }
                )

            if not policy.allows(restarts):
                raise RestartLimitExceeded(restarts) from last_error

            restarts += 1
            self.metrics.session_restarts += 1
            delay = policy.delay_for(restarts)
            if delay > 0:
                self.logger.info(f"Waiting {delay:.1f}s before restarting")
                self.sleep(delay)
