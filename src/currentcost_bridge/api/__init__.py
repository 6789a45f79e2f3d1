"""Runtime API: transport, sink, session loop and supervisor."""

from .bridge import create_supervisor, run_bridge
from .session import SessionLoop, parse_watts, reading_from_record
from .sink import FestivusSink, PowerSink
from .supervisor import Supervisor, TransportFactory
from .transport import SerialTransport, open_serial_transport

__all__ = [
    "create_supervisor",
    "run_bridge",
    "SessionLoop",
    "parse_watts",
    "reading_from_record",
    "FestivusSink",
    "PowerSink",
    "Supervisor",
    "TransportFactory",
    "SerialTransport",
    "open_serial_transport",
]
