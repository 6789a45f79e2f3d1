"""Command-line interface for the telemetry bridge."""

from .main import main

__all__ = ["main"]
