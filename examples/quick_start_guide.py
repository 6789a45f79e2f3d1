#!/usr/bin/env python3
"""
Quick Start Guide for the CurrentCost Bridge.

Feeds a captured stretch of monitor output through the same pipeline the
bridge runs against the serial port, printing readings instead of sending
them to Festivus.
"""

import io
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from currentcost_bridge import MONITOR_GRAMMAR, BridgeConfig, Supervisor
from currentcost_bridge.shared.errors import RestartLimitExceeded

CAPTURE = (
    # Plugged in mid-message
    "atts>00412</watts></ch2></msg>\r\n"
    "<msg><src>CC128-v0.11</src><dsb>00089</dsb><time>13:02:39</time>"
    "<tmpr>18.7</tmpr><sensor>0</sensor><id>01234</id><type>1</type>"
    "<ch1><watts>00345</watts></ch1><ch2><watts>00002</watts></ch2>"
    "<ch3><watts>00000</watts></ch3></msg>\r\n"
    # Periodic history dump
    "<msg><src>CC128-v0.11</src><hist><dsw>00032</dsw></hist></msg>\r\n"
    "<msg><time>13:02:45</time><tmpr>18.7</tmpr>"
    "<ch1><watts>01210</watts></ch1><ch2><watts>00880</watts></ch2>"
    "<ch3><watts>00000</watts></ch3></msg>\r\n"
)


class PrintingSink:
    """Sink that prints readings."""

    def insert(self, total: int, hot_water: int, solar: int) -> None:
        print(f"  total={total}W hot_water={hot_water}W solar={solar}W")


def quick_start_example():
    """Run one session over the capture."""

    print("CURRENTCOST BRIDGE - quick start")
    print("=" * 32)
    print(f"\nGrammar root: <{MONITOR_GRAMMAR.name}>")
    print("Readings:")

    # One session over the capture; the end of the capture ends the session
    config = BridgeConfig().override(retry__max_restarts=0)
    supervisor = Supervisor(
        lambda: io.BytesIO(CAPTURE.encode("ascii")),
        PrintingSink(),
        config=config,
    )
    try:
        supervisor.run()
    except RestartLimitExceeded as e:
        print(f"\nSession ended: {e.__cause__}")

    metrics = supervisor.metrics
    print(f"\nForwarded: {metrics.messages_forwarded}")
    print(f"Skipped:   {metrics.messages_skipped}")
    print(f"Noise:     {metrics.noise_events_discarded}")


if __name__ == "__main__":
    quick_start_example()
