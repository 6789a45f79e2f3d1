"""CurrentCost Bridge.

A self-healing bridge that reads live XML telemetry from a CurrentCost-style
energy monitor over a serial line and forwards power readings to Festivus.

Progressive API Disclosure:
- Level 1: ``run_bridge()`` reads the default serial port forever
- Level 2: ``Supervisor`` with a custom transport factory, sink and config
- Level 3: ``TagMatcher`` and a grammar over any event source
"""

__version__ = "0.1.0"
__author__ = "CurrentCost Bridge Team"

from .api import FestivusSink, SessionLoop, Supervisor, create_supervisor, run_bridge
from .matching import MONITOR_GRAMMAR, LeafCapture, SequenceNode, SequenceRoot, TagMatcher
from .shared.config import BridgeConfig
from .shared.result import PowerReading

__all__ = [
    "__author__",
    "__version__",

    # Level 1
    "run_bridge",

    # Level 2
    "create_supervisor",
    "Supervisor",
    "SessionLoop",
    "FestivusSink",
    "BridgeConfig",

    # Level 3
    "TagMatcher",
    "MONITOR_GRAMMAR",
    "SequenceRoot",
    "SequenceNode",
    "LeafCapture",

    "PowerReading",
]
