"""Tests for the serial transport."""

from unittest.mock import MagicMock, patch

import pytest
import serial

from currentcost_bridge.api.transport import SerialTransport, open_serial_transport
from currentcost_bridge.shared.config import SerialConfig
from currentcost_bridge.shared.errors import TransportError


@pytest.fixture
def port():
    mock_port = MagicMock()
    mock_port.port = "/dev/ttyUSB0"
    mock_port.is_open = True
    mock_port.in_waiting = 0
    return mock_port


class TestOpenSerialTransport:
    """Test opening the monitor's serial port."""

    def test_opens_with_monitor_settings(self):
        with patch("currentcost_bridge.api.transport.serial.Serial") as serial_class:
            transport = open_serial_transport()

        serial_class.assert_called_once_with(
            "/dev/ttyUSB0", baudrate=57600, timeout=86400.0
        )
        assert isinstance(transport, SerialTransport)
        assert transport.port is serial_class.return_value

    def test_custom_port(self):
        config = SerialConfig(port="/dev/ttyACM1", baud_rate=9600, timeout_s=5.0)
        with patch("currentcost_bridge.api.transport.serial.Serial") as serial_class:
            open_serial_transport(config)

        serial_class.assert_called_once_with("/dev/ttyACM1", baudrate=9600, timeout=5.0)

    def test_missing_device(self):
        with patch("currentcost_bridge.api.transport.serial.Serial") as serial_class:
            serial_class.side_effect = serial.SerialException("No such file or directory")

            with pytest.raises(TransportError, match="Could not open /dev/ttyUSB0"):
                open_serial_transport()


class TestSerialTransport:
    """Test reads from an open port."""

    def test_reads_buffered_bytes_after_first(self, port):
        port.read.side_effect = [b"<", b"msg>"]
        port.in_waiting = 4

        data = SerialTransport(port).read(1024)

        assert data == b"<msg>"
        port.read.assert_any_call(1)
        port.read.assert_any_call(4)

    def test_extra_read_bounded_by_size(self, port):
        port.read.side_effect = [b"<", b"ms"]
        port.in_waiting = 100

        SerialTransport(port).read(3)

        port.read.assert_any_call(2)

    def test_nothing_buffered(self, port):
        port.read.return_value = b"<"

        assert SerialTransport(port).read(1024) == b"<"
        port.read.assert_called_once_with(1)

    def test_timeout_returns_empty(self, port):
        port.read.return_value = b""

        assert SerialTransport(port).read(1024) == b""

    def test_read_failure(self, port):
        port.read.side_effect = serial.SerialException("device disconnected")

        with pytest.raises(TransportError, match="/dev/ttyUSB0"):
            SerialTransport(port).read(1024)

    def test_close(self, port):
        SerialTransport(port).close()
        port.close.assert_called_once_with()

    def test_close_when_already_closed(self, port):
        port.is_open = False
        SerialTransport(port).close()
        port.close.assert_not_called()
