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
Core functionality for pingboard.

This module contains host list parsing and the socket-based resolver that
turns host identifiers into probe targets once at startup.
"""

import ipaddress
import logging
import socket
from typing import Any, Iterable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

MAX_HOSTS = 128  # Hard cap to bound the probe worker pool.

HostEntry = Tuple[str, str]  # (host identifier, display name)


class Resolver(Protocol):
    """Resolve a host identifier to a probe address, or None when it cannot be resolved."""

    def resolve(self, name: str) -> Optional[str]: ...


class SocketResolver:
    """Resolver backed by the system resolver via getaddrinfo; IPv4 preferred."""

    def resolve(self, name: str) -> Optional[str]:
        try:
            return str(ipaddress.ip_address(name))
        except ValueError:
            pass
        try:
            addr_info = socket.getaddrinfo(name, None, socket.AF_UNSPEC, socket.SOCK_RAW)
        except (socket.gaierror, OSError, UnicodeError) as e:
            logger.warning("Could not resolve %s: %s", name, e)
            return None

        # getaddrinfo returns tuples: (family, type, proto, canonname, sockaddr)
        ipv4_addresses = []
        ipv6_addresses = []
        for family, _socktype, _proto, _canonname, sockaddr in addr_info:
            if family == socket.AF_INET:
                ipv4_addresses.append(_address_from_sockaddr(sockaddr))
            elif family == socket.AF_INET6:
                ipv6_addresses.append(_address_from_sockaddr(sockaddr))
        if ipv4_addresses:
            return ipv4_addresses[0]
        if ipv6_addresses:
            return ipv6_addresses[0]
        logger.warning("Resolver returned no usable address for %s", name)
        return None


def _address_from_sockaddr(sockaddr: Tuple[Any, ...]) -> str:
    address_value = sockaddr[0]
    if isinstance(address_value, str):
        return address_value
    return str(address_value)


def parse_host_line(line: str, line_number: int = 0, source: str = "<input>") -> Optional[HostEntry]:
    """
    Parse a single host line.

    Accepts ``host`` or ``host,display name``. Blank lines and ``#`` comments
    are skipped silently; malformed lines are skipped with a warning.

    Returns:
        (host, display_name) or None
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    parts = [part.strip() for part in stripped.split(",")]
    if len(parts) > 2:
        logger.warning("Invalid host entry at %s:%d. Expected 'host' or 'host,name'.", source, line_number)
        return None
    host = parts[0]
    if not host:
        logger.warning("Invalid host entry at %s:%d. A host is required.", source, line_number)
        return None
    display_name = parts[1] if len(parts) == 2 and parts[1] else host
    return host, display_name


def parse_host_lines(lines: Iterable[str], source: str = "<input>") -> List[HostEntry]:
    """Parse host lines from any iterable of text lines, e.g. an open file or stdin."""
    entries = []
    for line_number, line in enumerate(lines, start=1):
        entry = parse_host_line(line, line_number, source)
        if entry is not None:
            entries.append(entry)
    return entries


def read_input_file(input_file: str) -> List[HostEntry]:
    """
    Read and parse hosts from an input file.

    Raises:
        OSError: If the file cannot be opened or read
    """
    with open(input_file, "r", encoding="utf-8") as f:
        return parse_host_lines(f, input_file)
