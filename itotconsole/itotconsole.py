#!/usr/bin/env python3
"""
ITOT Console - Change Control Server

Serves the change-control REST API for IT/OT infrastructure.

Usage - in-memory store with demo actors:
    python3 itotconsole.py --seed-demo

Usage - JSON file store and a settings file:
    ITOT_STORAGE_BACKEND=json python3 itotconsole.py \\
        --config console.yaml \\
        --storage-path /var/lib/itot \\
        --port 9000
"""

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path

from changecontrol.api.run_server import build_console, serve
from changecontrol.config.settings import StorageBackend, load_settings, setup_logging


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="ITOT Console - Change Control Server",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level (overrides settings)")
    parser.add_argument("--storage-path", help="Directory for the JSON file store (implies json backend)")
    parser.add_argument("--host", help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to listen on")
    parser.add_argument("--seed-demo", action="store_true", help="Register demo actors")
    return parser.parse_args(argv)


def main(argv=None):
    """
    Main entry point
    """
    args = parse_args(argv)

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: invalid settings: {e}")
        sys.exit(1)

    overrides = {}
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.storage_path:
        overrides["storage_backend"] = StorageBackend.JSON
        overrides["storage_path"] = Path(args.storage_path).expanduser()
    if args.host:
        overrides["api_host"] = args.host
    if args.port is not None:
        overrides["api_port"] = args.port
    settings = dataclasses.replace(settings, **overrides)

    try:
        settings.validate()
    except ValueError as e:
        print(f"Error: invalid settings: {e}")
        sys.exit(1)

    setup_logging(settings.log_level)
    logger = logging.getLogger("ITOTConsole")
    logger.info(f"Settings: {settings.to_dict()}")

    console = build_console(settings, seed_demo=args.seed_demo)

    try:
        asyncio.run(serve(console))
    except KeyboardInterrupt:
        print("\nShutting down...")
        sys.exit(0)
    except Exception as e:
        print(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
