#!/usr/bin/env python
"""
Command-line interface for watching NYSE trade halts.

Example usage:
    haltwatch fetch
    haltwatch watch --interval 30s
    haltwatch --config config/haltwatch.yaml --log-level INFO watch
"""

import argparse
import asyncio
import logging
import re
import sys

from haltwatch.core import config
from haltwatch.core.errors import HaltWatchError
from haltwatch.core.logger import setup_logger
from haltwatch.watchers import halts

_UNITS = {"ns": 1e-9, "us": 1e-6, "µs": 1e-6, "ms": 1e-3, "s": 1.0, "m": 60.0, "h": 3600.0}
_DURATION = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """Seconds in a duration such as ``5s``, ``1m30s`` or ``250ms`` (units ns, us, ms, s, m, h)."""
    s = text.strip()
    pos, total = 0, 0.0
    while pos < len(s):
        m = _DURATION.match(s, pos)
        if not m:
            raise argparse.ArgumentTypeError(f"invalid duration {text!r}")
        total += float(m.group(1)) * _UNITS[m.group(2)]
        pos = m.end()
    if not s or total <= 0:
        raise argparse.ArgumentTypeError(f"duration must be positive: {text!r}")
    return total


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments (sys.argv when ``args`` is None)."""
    parser = argparse.ArgumentParser(
        prog="haltwatch",
        description="Show current NYSE trade halts",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=str,
        default=config.default_path(),
        help="YAML configuration file (missing file means defaults)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level for messages on stderr",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser(
        "fetch",
        help="Fetch current NYSE trade halts.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    watch = sub.add_parser(
        "watch",
        help="Watch for new NYSE trade halts and ding on new halts.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    watch.add_argument(
        "--interval",
        type=parse_duration,
        default="5s",
        help="Polling interval (e.g., 5s, 1m)",
    )

    return parser.parse_args(args)


def main(args: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parsed = parse_args(args)
    setup_logger("haltwatch", level=getattr(logging, parsed.log_level))

    try:
        config.configure(parsed.config)
        if parsed.command == "fetch":
            asyncio.run(halts.fetch_once(sys.stdout))
        else:
            asyncio.run(halts.run(sys.stdout, parsed.interval))
    except HaltWatchError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0

    return 0


if __name__ == "__main__":
    sys.exit(main())
