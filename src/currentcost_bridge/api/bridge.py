"""Top-level entry points wiring the serial port to Festivus."""

from functools import partial
from typing import Optional

from currentcost_bridge.shared.config import BridgeConfig
from currentcost_bridge.shared.logging import get_logger

from .sink import FestivusSink, PowerSink
from .supervisor import Supervisor
from .transport import open_serial_transport


def create_supervisor(
    config: Optional[BridgeConfig] = None,
    sink: Optional[PowerSink] = None
) -> Supervisor:
    """Build a supervisor reading the configured serial port.

    Args:
        config: Bridge configuration, defaults throughout when omitted
        sink: Sink override; a ``FestivusSink`` for ``config.sink`` otherwise

    Returns:
        Supervisor ready to ``run()``
    """
    config = config or BridgeConfig()
    transport_logger = get_logger("currentcost_bridge.api.transport", None, "serial_transport")
    return Supervisor(
        transport_factory=partial(open_serial_transport, config.serial, transport_logger),
        sink=sink or FestivusSink(config.sink),
        config=config,
    )


def run_bridge(config: Optional[BridgeConfig] = None) -> None:
    """Ingest from the monitor forever."""
    create_supervisor(config).run()
