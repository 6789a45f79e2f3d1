"""Serial transport for the energy monitor.

The monitor streams at 57600 baud with no flow control. The port is opened
with a read timeout of a day, so a read blocks until the monitor speaks.
"""

from typing import Optional

import serial

from currentcost_bridge.shared.config import SerialConfig
from currentcost_bridge.shared.errors import TransportError
from currentcost_bridge.shared.logging import CorrelationLogger, get_logger


class SerialTransport:
    """Byte source over an open pyserial port.

    ``read`` waits for one byte, then takes whatever else is already buffered,
    so a large ``size`` never holds data back until the timeout.
    """

    def __init__(self, port: serial.Serial) -> None:
        self.port = port

    def read(self, size: int) -> bytes:
        try:
            data = self.port.read(1)
            if data:
                extra = min(self.port.in_waiting, size - 1)
                if extra > 0:
                    data += self.port.read(extra)
        except serial.SerialException as e:
            raise TransportError(f"Serial read failed on {self.port.port}: {e}") from e
        return data

    def close(self) -> None:
        if self.port.is_open:
            self.port.close()


def open_serial_transport(
    config: Optional[SerialConfig] = None,
    logger: Optional[CorrelationLogger] = None
) -> SerialTransport:
    """Open and configure the monitor's serial port.

    Raises:
        TransportError: The device is missing, busy, or rejected the settings
    """
    config = config or SerialConfig()
    logger = logger or get_logger(__name__, None, "serial_transport")

    try:
        port = serial.Serial(
            config.port,
            baudrate=config.baud_rate,
            timeout=config.timeout_s,
        )
    except (serial.SerialException, ValueError) as e:
        raise TransportError(f"Could not open {config.port}: {e}") from e

    logger.info(
        f"Opened {config.port} at {config.baud_rate} baud",
        extra={"port": config.port, "baud_rate": config.baud_rate}
    )
    return SerialTransport(port)
