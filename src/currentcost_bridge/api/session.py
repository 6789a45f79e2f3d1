"""Session loop: one connection's worth of message ingestion.

Each iteration matches one message, converts the captured fields into a
typed reading and forwards it to the sink. A message that fails to match is
logged and skipped; the connection stays open. A message that matches but
carries non-numeric readings escapes to the supervisor.
"""

from typing import Optional

from currentcost_bridge.matching import (
    FIELD_HOT_WATER,
    FIELD_SOLAR,
    FIELD_TEMPERATURE,
    FIELD_TIME,
    FIELD_TOTAL,
    MONITOR_GRAMMAR,
    GrammarNode,
    Record,
    TagMatcher,
)
from currentcost_bridge.shared.errors import MatchError, NumericParseError, SinkError
from currentcost_bridge.shared.logging import CorrelationLogger, get_logger
from currentcost_bridge.shared.result import IngestMetrics, MessageOutcome, PowerReading

from .sink import PowerSink


def parse_watts(record: Record, key: str) -> int:
    """Parse one captured power field as whole watts.

    Raises:
        NumericParseError: The field is missing or not an integer
    """
    raw = record.get(key)
    if raw is None:
        raise NumericParseError(key, None)
    try:
        return int(raw.strip())
    except ValueError as e:
        raise NumericParseError(key, raw) from e


def reading_from_record(record: Record) -> PowerReading:
    """Build a typed reading from a matched record."""
    return PowerReading(
        total=parse_watts(record, FIELD_TOTAL),
        hot_water=parse_watts(record, FIELD_HOT_WATER),
        solar=parse_watts(record, FIELD_SOLAR),
        time=record.get(FIELD_TIME),
        temperature=record.get(FIELD_TEMPERATURE),
    )


class SessionLoop:
    """Match, convert and forward messages until the connection fails.

    Args:
        matcher: Tag matcher bound to this session's event stream
        sink: Destination for readings
        grammar: Message grammar, fixed for the life of the process
        metrics: Counters shared with the supervisor
        logger: Session-scoped logger
    """

    def __init__(
        self,
        matcher: TagMatcher,
        sink: PowerSink,
        grammar: GrammarNode = MONITOR_GRAMMAR,
        metrics: Optional[IngestMetrics] = None,
        logger: Optional[CorrelationLogger] = None
    ) -> None:
        self.matcher = matcher
        self.sink = sink
        self.grammar = grammar
        self.metrics = metrics if metrics is not None else IngestMetrics()
        self.logger = logger or get_logger(__name__, None, "session")

    def run_once(self) -> MessageOutcome:
        """Process exactly one message attempt.

        Raises:
            NumericParseError: A matched message carried a non-numeric reading
            TransportError: The connection failed
        """
        try:
            record = self.matcher.match(self.grammar)
        except MatchError as e:
            self.logger.warning(
                f"Skipping unparsable or historical message: {e}",
                extra={
                    "error_type": type(e).__name__,
                    "element": e.element,
                    "position": str(e.event.position) if e.event else None,
                }
            )
            outcome = MessageOutcome.SKIPPED
        else:
            self.logger.info(f"Parsed message: {record}", extra={"record": record})
            reading = reading_from_record(record)
            outcome = self._forward(reading)

        self.metrics.record_outcome(outcome)
        return outcome

    def _forward(self, reading: PowerReading) -> MessageOutcome:
        try:
            self.sink.insert(reading.total, reading.hot_water, reading.solar)
        except SinkError as e:
            self.logger.error(
                f"Error forwarding reading to sink: {e}",
                extra={"status_code": e.status_code},
                exc_info=False
            )
            return MessageOutcome.SINK_FAILED
        self.logger.debug(
            "Forwarded reading",
            extra={
                "total": reading.total,
                "hot_water": reading.hot_water,
                "solar": reading.solar,
            }
        )
        return MessageOutcome.FORWARDED

    def run(self, max_messages: Optional[int] = None) -> int:
        """Process messages forever, or ``max_messages`` times.

        Returns:
            Number of message attempts processed
        """
        processed = 0
        while max_messages is None or processed < max_messages:
            self.run_once()
            processed += 1
        return processed
