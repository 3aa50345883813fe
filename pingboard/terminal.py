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
Terminal access for pingboard.

Defines the Terminal protocol the renderer and engine depend on, and the
AnsiTerminal implementation that drives a real tty with ANSI escape
sequences.
"""

import contextlib
import os
import sys
from typing import ContextManager, Optional, Protocol, TextIO, Tuple

from pingboard.input_keys import key_available, read_key, terminal_raw_mode

ANSI_CLEAR_SCREEN = "\x1b[2J\x1b[H"

# TERM values known to lack cursor addressing
_DUMB_TERMINALS = frozenset(("", "dumb", "unknown"))


class TerminalCapabilityError(RuntimeError):
    """Raised at startup when the terminal cannot reposition the cursor."""


class Terminal(Protocol):
    """Terminal capabilities used by the renderer and engine."""

    def width(self) -> int: ...

    def supports_cursor(self) -> bool: ...

    def move_cursor(self, x: int, y: int) -> None: ...

    def write(self, text: str) -> None: ...

    def flush(self) -> None: ...

    def clear_screen(self) -> None: ...

    def raw_input(self) -> ContextManager[None]: ...

    def key_available(self) -> bool: ...

    def read_key(self) -> Optional[str]: ...


def get_terminal_size(fallback: Tuple[int, int] = (80, 24)) -> os.terminal_size:
    """
    Get the terminal size by directly querying the terminal.

    Queries stdout, then stderr, then stdin, so the size is found even when
    one of them is redirected.

    Args:
        fallback: Tuple of (columns, lines) to use if terminal size
                  cannot be determined
    """
    for stream in (sys.stdout, sys.stderr, sys.stdin):
        try:
            if stream.isatty():
                return os.get_terminal_size(stream.fileno())
        except (AttributeError, ValueError, OSError):
            continue
    return os.terminal_size(fallback)


class AnsiTerminal:
    """Terminal implementation over stdout/stdin using ANSI escape sequences."""

    def __init__(self, stdout: Optional[TextIO] = None, stdin: Optional[TextIO] = None) -> None:
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stdin = stdin if stdin is not None else sys.stdin

    def width(self) -> int:
        return get_terminal_size(fallback=(80, 24)).columns

    def supports_cursor(self) -> bool:
        try:
            if not self.stdout.isatty():
                return False
        except (AttributeError, ValueError):
            return False
        return os.environ.get("TERM", "").lower() not in _DUMB_TERMINALS

    def move_cursor(self, x: int, y: int) -> None:
        """Move the cursor to zero-based column x, line y."""
        self.stdout.write(f"\x1b[{y + 1};{x + 1}H")

    def write(self, text: str) -> None:
        self.stdout.write(text)

    def flush(self) -> None:
        self.stdout.flush()

    def clear_screen(self) -> None:
        self.stdout.write(ANSI_CLEAR_SCREEN)

    def raw_input(self) -> ContextManager[None]:
        try:
            if not self.stdin.isatty():
                return contextlib.nullcontext()
            return terminal_raw_mode(self.stdin.fileno())
        except (AttributeError, ValueError, OSError):
            return contextlib.nullcontext()

    def key_available(self) -> bool:
        return key_available(self.stdin)

    def read_key(self) -> Optional[str]:
        return read_key(self.stdin)
