#!/usr/bin/env python3
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
# Review required for correctness, security, and licensing.

"""
Python wrapper for the platform ping command.

Each call sends exactly one ICMP echo request by running the system ``ping``
binary, which already carries the privileges needed for raw ICMP sockets.
No timeout flag is passed: the platform default echo timeout applies, since
short user-supplied timeouts produce false timeouts on slow links.

Exit status contract shared by iputils, BSD and macOS ping:
  - Exit 0: a reply was received ("time=<value> ms" in stdout)
  - Exit 1: no reply (timeout) or an ICMP error report
  - Exit 2 and above: usage, resolution or socket errors
"""

import ipaddress
import platform
import re
import subprocess
from typing import List, Optional, Tuple

# Safety net against a hung child process. This is not an echo timeout;
# the platform default governs how long ping waits for a reply.
PROBE_GUARD_SECONDS = 30.0

_LATENCY_RE = re.compile(r"time\s*([=<])\s*(\d+(?:\.\d+)?)\s*ms", re.IGNORECASE)
_ICMP_ERROR_RE = re.compile(r"unreachable|exceeded|prohibited", re.IGNORECASE)


class PingCommandError(RuntimeError):
    """Raised when the ping command reports an error rather than a reply or timeout."""

    def __init__(self, message, returncode=None, output=None):
        super().__init__(message)
        self.returncode = returncode
        self.output = output


def build_ping_command(target: str, system: Optional[str] = None) -> List[str]:
    """
    Build the argument list for a single echo request to target.

    Args:
        target: Resolved IP address to probe
        system: Platform name as returned by platform.system() (auto-detected if None)

    Returns:
        Command argument list for subprocess
    """
    if system is None:
        system = platform.system()
    if system == "Darwin" and _is_ipv6(target):
        return ["ping6", "-c", "1", target]
    return ["ping", "-c", "1", target]


def _is_ipv6(target: str) -> bool:
    try:
        return ipaddress.ip_address(target).version == 6
    except ValueError:
        return False


def parse_latency_ms(output: str) -> Optional[float]:
    """
    Extract the round-trip time from ping output.

    Handles "time=12.3 ms", "time=15 ms" and "time<1 ms".
    A "time<N" report is taken as N/2.

    Returns:
        Latency in milliseconds, or None if the output carries no time.
    """
    if not output:
        return None
    match = _LATENCY_RE.search(output)
    if not match:
        return None
    value = float(match.group(2))
    if match.group(1) == "<":
        return value / 2.0
    return value


def classify_ping_output(returncode: int, output: str) -> Tuple[str, Optional[float]]:
    """
    Classify a finished ping run.

    Returns:
        ("reply", latency_ms) on an echo reply, ("timeout", None) when no
        reply arrived.

    Raises:
        PingCommandError: On ICMP error reports, unparseable replies and
            any other non-zero exit status.
    """
    if returncode == 0:
        latency = parse_latency_ms(output)
        if latency is None:
            raise PingCommandError("ping succeeded but reported no round-trip time", returncode=0, output=output)
        return "reply", latency
    if returncode == 1:
        match = _ICMP_ERROR_RE.search(output or "")
        if match:
            raise PingCommandError(f"ping received an ICMP error ({match.group(0)})", returncode=1, output=output)
        return "timeout", None
    details = f"ping failed with return code {returncode}"
    stripped = (output or "").strip()
    if stripped:
        details = f"{details}: {stripped.splitlines()[-1]}"
    raise PingCommandError(details, returncode=returncode, output=output)


def ping_once(target: str, system: Optional[str] = None) -> Tuple[str, Optional[float]]:
    """
    Send one echo request to target using the platform ping command.

    Args:
        target: Resolved IP address to probe
        system: Platform name override (auto-detected if None)

    Returns:
        tuple[str, float | None]: ("reply", rtt_ms) or ("timeout", None)

    Raises:
        FileNotFoundError: If no ping binary is available
        OSError: If the ping process cannot be started
        PingCommandError: If ping reports an error
    """
    cmd_args = build_ping_command(target, system)
    try:
        result = subprocess.run(
            cmd_args,
            capture_output=True,
            text=True,
            timeout=PROBE_GUARD_SECONDS,
            check=False,  # Exit codes are classified below
        )
    except subprocess.TimeoutExpired:
        return "timeout", None
    return classify_ping_output(result.returncode, f"{result.stdout or ''}{result.stderr or ''}")
