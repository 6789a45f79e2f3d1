"""Error taxonomy for the telemetry bridge.

Errors fall into three groups by how far they propagate:

- Match errors (``UnexpectedEvent``, ``MissingContent``, ``StreamOutOfSync``)
  are local to one message attempt. The session loop logs them and moves on
  to the next message on the same connection.
- ``TransportError`` and ``NumericParseError`` escape the session loop and
  make the supervisor rebuild the whole session.
- ``SinkError`` is handled where the insert is made and never escalates.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from currentcost_bridge.tokenization.events import Event


class BridgeError(Exception):
    """Base exception for all bridge errors."""


class MatchError(BridgeError):
    """A message could not be matched against the grammar."""

    def __init__(
        self,
        message: str,
        element: Optional[str] = None,
        event: Optional["Event"] = None
    ) -> None:
        super().__init__(message)
        self.element = element
        self.event = event


class UnexpectedEvent(MatchError):
    """Something other than the expected start tag arrived."""


class MissingContent(MatchError):
    """A leaf element held no character data."""


class StreamOutOfSync(MatchError):
    """Mid-sequence the stream produced neither a start tag nor a skippable element."""


class TransportError(BridgeError):
    """The underlying byte source failed or reached its end."""


class NumericParseError(BridgeError):
    """A captured field was not a valid number."""

    def __init__(self, field_key: str, raw_value: Optional[str]) -> None:
        super().__init__(
            f"Field {field_key!r} is not numeric: {raw_value!r}"
        )
        self.field_key = field_key
        self.raw_value = raw_value


class SinkError(BridgeError):
    """The downstream insert failed."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RestartLimitExceeded(BridgeError):
    """A finite retry policy ran out of restarts."""

    def __init__(self, restarts: int) -> None:
        super().__init__(f"Gave up after {restarts} session restarts")
        self.restarts = restarts
