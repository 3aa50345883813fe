# Copyright 2025 icecake0141
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# This file was created or modified with the assistance of an AI (Large Language Model).
# Review for correctness and security.

"""
Command-line interface for pingboard.

This module contains the main entry point and command-line argument handling.
"""

import argparse
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from pingboard.config import load_config
from pingboard.core import HostEntry, SocketResolver, parse_host_line, parse_host_lines, read_input_file
from pingboard.engine import Engine
from pingboard.pinger import Prober
from pingboard.terminal import AnsiTerminal, TerminalCapabilityError

logger = logging.getLogger(__name__)


def _configure_logging(log_level: str, log_file: Optional[str]) -> None:
    """Configure logging handlers for CLI execution."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.insert(0, logging.FileHandler(os.path.expanduser(log_file), encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


# Hardcoded defaults for config-overridable fields.
# Applied after config merging for any field still set to None.
# result_count stays None when unset: it is derived from the terminal width.
_HARDCODED_DEFAULTS: Dict[str, Any] = {
    "min_delay": 250,
    "color": True,
    "log_level": "WARNING",
}


def _apply_config_to_args(args: argparse.Namespace, config: Dict[str, Any]) -> None:
    """
    Overlay config file values onto a parsed argument namespace.

    Only fields that are still ``None`` (i.e. not explicitly set on the CLI)
    are updated.  Config-supplied ``hosts`` are used only when no hosts were
    given on the CLI and ``--input``/``-f`` was not used.
    """
    for key, value in config.items():
        if key == "hosts":
            if not getattr(args, "hosts", None) and not getattr(args, "input", None):
                args.config_hosts = value
        elif hasattr(args, key) and getattr(args, key) is None:
            setattr(args, key, value)


def handle_options(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse and validate command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="pingboard",
        description="pingboard - Watch several hosts answer ICMP echo requests side by side",
        epilog="Each round pings every host once, in parallel, about once per second. "
        "Press any key or Ctrl-C to stop.",
    )
    parser.add_argument(
        "-n",
        "--result-count",
        dest="result_count",
        type=int,
        default=None,
        help="Number of results kept per host (default: fit to terminal width)",
    )
    parser.add_argument(
        "-d",
        "--min-delay",
        dest="min_delay",
        type=int,
        default=None,
        help="Minimum pause between rounds in milliseconds (default: 250)",
    )
    parser.add_argument(
        "-f",
        "--input",
        type=str,
        help="File containing hosts, one per line (format: host or host,name)",
        required=False,
    )
    parser.add_argument(
        "--no-color",
        dest="color",
        action="store_false",
        default=None,
        help="Disable colored output",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional log file path for persistent logging",
    )
    parser.add_argument(
        "--no-config",
        action="store_true",
        default=False,
        help="Skip loading ~/.pingboard.conf config file",
    )
    parser.add_argument(
        "hosts",
        nargs="*",
        help="Hosts to ping (names or addresses, optionally host,name); '-' reads hosts from stdin",
    )

    args = parser.parse_args(argv)
    args.config_hosts = []

    if not args.no_config:
        try:
            config = load_config()
            _apply_config_to_args(args, config)
        except ValueError as exc:
            parser.error(str(exc))

    for field, default in _HARDCODED_DEFAULTS.items():
        if getattr(args, field, None) is None:
            setattr(args, field, default)

    if args.result_count is not None and args.result_count < 1:
        parser.error("--result-count must be a positive integer.")
    if args.min_delay < 1:
        parser.error("--min-delay must be a positive number of milliseconds.")
    return args


def collect_hosts(args: argparse.Namespace) -> List[HostEntry]:
    """
    Gather hosts from positional arguments, --input, stdin and the config file.

    Raises:
        OSError: If the --input file cannot be read
    """
    entries: List[HostEntry] = []
    read_stdin = "-" in args.hosts or (not args.hosts and not args.input and not sys.stdin.isatty())
    for index, value in enumerate(args.hosts, start=1):
        if value == "-":
            continue
        entry = parse_host_line(value, index, "<arguments>")
        if entry is not None:
            entries.append(entry)
    if args.input:
        entries.extend(read_input_file(args.input))
    if read_stdin:
        entries.extend(parse_host_lines(sys.stdin, "<stdin>"))
    if not entries:
        entries.extend(args.config_hosts)
    return entries


def run(args: argparse.Namespace) -> int:
    """Run the dashboard with parsed arguments and return the process exit status."""
    _configure_logging(args.log_level, args.log_file)
    try:
        hosts = collect_hosts(args)
    except OSError as e:
        print(f"Error: Cannot read host file '{args.input}': {e}", file=sys.stderr)
        return 1
    if not hosts:
        print("Error: No hosts specified. Provide hosts as arguments, on stdin, or with -f/--input.", file=sys.stderr)
        return 1

    print(f"pingboard - Validating {len(hosts)} host(s)")
    try:
        engine = Engine(
            hosts,
            SocketResolver(),
            AnsiTerminal(),
            Prober(),
            result_count=args.result_count,
            minimum_delay_ms=args.min_delay,
            use_color=args.color,
        )
        engine.run()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except TerminalCapabilityError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        # Ctrl-C outside the display loop (e.g. during resolution) is still a normal stop.
        logger.debug("Interrupted before the display loop started")
    return 0


def main() -> None:
    """Main entrypoint for the CLI - parses arguments and runs the application."""
    args = handle_options()
    sys.exit(run(args))
