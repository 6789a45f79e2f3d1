"""Configuration classes for the telemetry bridge.

This module provides configuration objects for every stage of the pipeline,
from the serial transport through the matcher to the ingestion sink and the
supervisor's restart policy.
"""

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

DEFAULT_SERIAL_PORT = "/dev/ttyUSB0"
DEFAULT_BAUD_RATE = 57600
ONE_DAY_SECONDS = 60.0 * 60.0 * 24.0
DEFAULT_SINK_URL = "http://localhost:3000"
DEFAULT_INSERT_PATH = "/api/power"

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class SerialConfig:
    """Configuration for the serial transport."""

    port: str = DEFAULT_SERIAL_PORT
    baud_rate: int = DEFAULT_BAUD_RATE
    # Effectively "block until a byte arrives"
    timeout_s: float = ONE_DAY_SECONDS
    read_chunk_size: int = 1024

    def __post_init__(self) -> None:
        """Validate serial configuration."""
        if not self.port:
            raise ValueError("port must not be empty")
        if self.baud_rate <= 0:
            raise ValueError("baud_rate must be > 0")
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        if self.read_chunk_size <= 0:
            raise ValueError("read_chunk_size must be > 0")


@dataclass
class ReaderConfig:
    """Configuration for byte decoding and the streaming event reader."""

    encoding: str = "utf-8"
    max_token_length: int = 4096

    def __post_init__(self) -> None:
        """Validate reader configuration."""
        if not self.encoding:
            raise ValueError("encoding must not be empty")
        if self.max_token_length <= 0:
            raise ValueError("max_token_length must be > 0")


@dataclass
class MatcherConfig:
    """Configuration for the grammar-driven tag matcher."""

    # False restores the name-only close match, which ends a skip at the
    # first same-named closing tag regardless of nesting.
    track_nesting: bool = True
    drain_wrong_root: bool = True


@dataclass
class SinkConfig:
    """Configuration for the Festivus ingestion endpoint."""

    base_url: str = DEFAULT_SINK_URL
    insert_path: str = DEFAULT_INSERT_PATH
    # None means no timeout: a hanging endpoint stalls ingestion.
    timeout_s: Optional[float] = None

    def __post_init__(self) -> None:
        """Validate sink configuration."""
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        if not self.insert_path.startswith("/"):
            raise ValueError("insert_path must start with /")
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ValueError("timeout_s must be > 0 or None")

    @property
    def insert_url(self) -> str:
        """Full URL of the insert endpoint."""
        return self.base_url.rstrip("/") + self.insert_path


@dataclass
class RetryPolicy:
    """Restart policy applied by the supervisor.

    The defaults restart forever with no delay, which suits a local serial
    device. A finite ``max_restarts`` or a positive ``backoff_s`` makes the
    bridge usable over less trustworthy transports.
    """

    max_restarts: Optional[int] = None
    backoff_s: float = 0.0
    backoff_multiplier: float = 2.0
    max_backoff_s: float = 60.0

    def __post_init__(self) -> None:
        """Validate retry policy."""
        if self.max_restarts is not None and self.max_restarts < 0:
            raise ValueError("max_restarts must be >= 0 or None")
        if self.backoff_s < 0:
            raise ValueError("backoff_s must be >= 0")
        if self.backoff_multiplier < 1.0:
            raise ValueError("backoff_multiplier must be >= 1.0")
        if self.max_backoff_s < 0:
            raise ValueError("max_backoff_s must be >= 0")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before restart number ``attempt`` (1-based)."""
        if self.backoff_s <= 0 or attempt <= 0:
            return 0.0
        delay = self.backoff_s * (self.backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_backoff_s)

    def allows(self, restarts: int) -> bool:
        """Check whether another restart is permitted after ``restarts`` so far."""
        return self.max_restarts is None or restarts < self.max_restarts


@dataclass
class LoggingConfig:
    """Logging and diagnostics settings."""

    level: str = "INFO"
    format: str = (
        "%(asctime)s %(levelname)s [%(component)s:%(correlation_id)s] %(message)s"
    )

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        if self.level not in VALID_LOG_LEVELS:
            raise ValueError(f"level must be one of {VALID_LOG_LEVELS}")


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


_SECTIONS = ["serial", "reader", "matcher", "sink", "retry", "logging"]


@dataclass(frozen=True)
class BridgeConfig:
    """Complete configuration for the telemetry bridge.

    Immutable once built; use :meth:`override` to derive variants.
    """

    serial: SerialConfig = field(default_factory=SerialConfig)
    reader: ReaderConfig = field(default_factory=ReaderConfig)
    matcher: MatcherConfig = field(default_factory=MatcherConfig)
    sink: SinkConfig = field(default_factory=SinkConfig)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    name: Optional[str] = None

    def __post_init__(self) -> None:
        """Re-run section validation so overrides cannot bypass it."""
        try:
            self.serial.__post_init__()
            self.reader.__post_init__()
            self.sink.__post_init__()
            self.retry.__post_init__()
            self.logging.__post_init__()
        except ValueError as e:
            raise ConfigValidationError(str(e)) from e

    def override(self, **kwargs: Any) -> "BridgeConfig":
        """Create a new configuration with specific overrides.

        Args:
            **kwargs: Field overrides; nested fields use ``section__field``

        Returns:
            New BridgeConfig instance with overrides applied

        Example:
            >>> config = BridgeConfig()
            >>> config.override(serial__port="/dev/ttyUSB1").serial.port
            '/dev/ttyUSB1'
        """
        nested_overrides: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                section, field_name = key.split("__", 1)
                if section not in _SECTIONS:
                    raise ConfigValidationError(
                        f"Unknown configuration section: {section}",
                        field_name=key,
                        suggestions=list(_SECTIONS)
                    )
                nested_overrides.setdefault(section, {})[field_name] = value
            else:
                nested_overrides[key] = value

        new_fields: Dict[str, Any] = {}
        for key, value in nested_overrides.items():
            if key in _SECTIONS and isinstance(value, dict):
                try:
                    new_fields[key] = replace(getattr(self, key), **value)
                except (TypeError, ValueError) as e:
                    raise ConfigValidationError(str(e), field_name=key) from e
            else:
                new_fields[key] = value

        return replace(self, **new_fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        def _dataclass_to_dict(obj: Any) -> Any:
            if hasattr(obj, "__dataclass_fields__"):
                return {
                    name: _dataclass_to_dict(getattr(obj, name))
                    for name in obj.__dataclass_fields__
                }
            if isinstance(obj, Enum):
                return obj.name
            if isinstance(obj, (list, tuple, set)):
                return [_dataclass_to_dict(item) for item in obj]
            return obj

        result = _dataclass_to_dict(self)
        if not isinstance(result, dict):
            raise ConfigValidationError("Configuration serialization failed")
        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeConfig":
        """Create configuration from dictionary.

        Unknown sections or fields raise ``ConfigValidationError`` rather than
        being silently dropped.

        Args:
            data: Dictionary containing configuration data

        Returns:
            BridgeConfig instance created from dictionary
        """
        section_types = {
            "serial": SerialConfig,
            "reader": ReaderConfig,
            "matcher": MatcherConfig,
            "sink": SinkConfig,
            "retry": RetryPolicy,
            "logging": LoggingConfig,
        }

        field_values: Dict[str, Any] = {}
        for key, value in data.items():
            if key in section_types:
                if not isinstance(value, dict):
                    raise ConfigValidationError(
                        f"Section {key!r} must be an object", field_name=key
                    )
                try:
                    field_values[key] = section_types[key](**value)
                except TypeError as e:
                    raise ConfigValidationError(str(e), field_name=key) from e
                except ValueError as e:
                    raise ConfigValidationError(str(e), field_name=key) from e
            elif key == "name":
                field_values[key] = value
            else:
                raise ConfigValidationError(
                    f"Unknown configuration key: {key}",
                    field_name=key,
                    suggestions=list(section_types)
                )

        return cls(**field_values)

    @classmethod
    def from_json(cls, json_str: str) -> "BridgeConfig":
        """Create configuration from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Invalid JSON configuration: {e}") from e
        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration root must be an object")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "BridgeConfig":
        """Load configuration from a JSON file."""
        config_path = Path(path)
        try:
            text = config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Could not read config file {config_path}: {e}") from e
        return cls.from_json(text)

    @classmethod
    def legacy_parity(cls) -> "BridgeConfig":
        """Preset reproducing the name-only closing-tag skip."""
        return cls(
            matcher=MatcherConfig(track_nesting=False, drain_wrong_root=True),
            name="legacy_parity"
        )
