"""Main CLI entry point for the currentcost-bridge command-line tool.

Runs the bridge forever against the configured serial port, or prints the
effective configuration.
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from currentcost_bridge import __version__
from currentcost_bridge.api import run_bridge
from currentcost_bridge.shared.config import BridgeConfig, ConfigError
from currentcost_bridge.shared.errors import RestartLimitExceeded
from currentcost_bridge.shared.logging import configure_logging, get_logger

EXIT_GAVE_UP = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="currentcost-bridge",
        description="Forward live energy monitor readings to Festivus"
    )

    parser.add_argument("--version", action="version", version=__version__)

    # Shared by every command so options work before or after the command name
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config", "-c",
        type=Path,
        help="JSON configuration file"
    )
    common.add_argument("--port", help="Serial device path")
    common.add_argument("--baud", type=int, help="Serial baud rate")
    common.add_argument("--sink-url", help="Festivus base URL")
    common.add_argument(
        "--legacy-skip",
        action="store_true",
        help="End element skips at the first same-named closing tag"
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    common.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.add_parser(
        "run", parents=[common], help="Ingest from the monitor forever (default)"
    )
    subparsers.add_parser(
        "show-config", parents=[common], help="Print the effective configuration"
    )

    return parser


def build_config(args: argparse.Namespace) -> BridgeConfig:
    """Combine the config file (if any) with command-line overrides.

    Raises:
        ConfigError: The file is unreadable or a value is invalid
    """
    config = BridgeConfig.from_file(args.config) if args.config else BridgeConfig()

    overrides: Dict[str, Any] = {}
    if args.port:
        overrides["serial__port"] = args.port
    if args.baud is not None:
        overrides["serial__baud_rate"] = args.baud
    if args.sink_url:
        overrides["sink__base_url"] = args.sink_url
    if args.legacy_skip:
        overrides["matcher__track_nesting"] = False
    if args.verbose:
        overrides["logging__level"] = "DEBUG"
    elif args.quiet:
        overrides["logging__level"] = "ERROR"

    return config.override(**overrides) if overrides else config


def cmd_run(config: BridgeConfig) -> int:
    """Handle run command."""
    configure_logging(config.logging)
    logger = get_logger(__name__, None, "cli")
    logger.info(
        f"Bridging {config.serial.port} to {config.sink.insert_url}",
        extra={"config": config.to_dict()}
    )
    run_bridge(config)
    return 0


def cmd_show_config(config: BridgeConfig) -> int:
    """Handle show-config command."""
    print(config.to_json())
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    arguments = list(sys.argv[1:] if argv is None else argv)
    if not arguments or arguments[0] not in ("run", "show-config", "-h", "--help", "--version"):
        arguments.insert(0, "run")
    args = parser.parse_args(arguments)

    try:
        config = build_config(args)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        if args.command == "show-config":
            return cmd_show_config(config)
        return cmd_run(config)
    except RestartLimitExceeded as e:
        get_logger(__name__, None, "cli").error(
            f"Bridge stopped: {e}",
            extra={"restarts": e.restarts, "last_error": str(e.__cause__)},
            exc_info=False
        )
        print(f"Bridge stopped: {e}: {e.__cause__}", file=sys.stderr)
        return EXIT_GAVE_UP
    except KeyboardInterrupt:
        print("\nStopped by user", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
