"""Shared utilities for the telemetry bridge.

This module provides configuration objects, the error taxonomy, result types
and logging helpers used across all pipeline stages.
"""

from .config import (
    BridgeConfig,
    ConfigError,
    ConfigValidationError,
    LoggingConfig,
    MatcherConfig,
    ReaderConfig,
    RetryPolicy,
    SerialConfig,
    SinkConfig,
)
from .errors import (
    BridgeError,
    MatchError,
    MissingContent,
    NumericParseError,
    RestartLimitExceeded,
    SinkError,
    StreamOutOfSync,
    TransportError,
    UnexpectedEvent,
)
from .logging import (
    CorrelationLogger,
    configure_logging,
    get_logger,
)
from .result import (
    IngestMetrics,
    MessageOutcome,
    PowerReading,
)

__all__ = [
    "BridgeConfig",
    "ConfigError",
    "ConfigValidationError",
    "LoggingConfig",
    "MatcherConfig",
    "ReaderConfig",
    "RetryPolicy",
    "SerialConfig",
    "SinkConfig",
    "BridgeError",
    "MatchError",
    "MissingContent",
    "NumericParseError",
    "RestartLimitExceeded",
    "SinkError",
    "StreamOutOfSync",
    "TransportError",
    "UnexpectedEvent",
    "CorrelationLogger",
    "configure_logging",
    "get_logger",
    "IngestMetrics",
    "MessageOutcome",
    "PowerReading",
]
