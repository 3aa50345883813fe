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
Keyboard input handling for pingboard.

Keys are read straight from the terminal descriptor once select() reports
them, and named with the readchar key constants.

Any keypress or Ctrl-C stops the dashboard. Input is never awaited while
probing: the InputWatcher polls between rounds and turns a pending key or
SIGINT into a stop token that the engine checks at round boundaries.
"""

import contextlib
import logging
import os
import select
import signal
import sys
import termios
import threading
import time
import tty
from typing import Any, Generator, Optional, TextIO

import readchar

logger = logging.getLogger(__name__)

# Granularity of the pacing sleep; bounds how long a keypress goes unnoticed.
POLL_SLICE_SECONDS = 0.05

# Upper bound on bytes taken per keypress; covers the longest escape sequences.
KEY_READ_LIMIT = 32


@contextlib.contextmanager
def terminal_raw_mode(fd: Optional[int] = None) -> Generator[None, None, None]:
    """Context manager that puts a terminal into cbreak mode and restores it on exit.

    cbreak delivers single keypresses without echo while leaving Ctrl-C as
    SIGINT. The original settings are restored even when the body raises.

    Args:
        fd: Terminal file descriptor to configure.  Defaults to ``sys.stdin.fileno()``.
    """
    if fd is None:
        try:
            fd = sys.stdin.fileno()
        except (AttributeError, ValueError, OSError):
            yield
            return
    try:
        old_settings = termios.tcgetattr(fd)
    except termios.error:
        # Not a real terminal (e.g. a pipe or test mock) – skip mode setup.
        yield
        return
    try:
        tty.setcbreak(fd)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)


def key_available(stream: Optional[TextIO] = None) -> bool:
    """Return True when a key can be read from stream without blocking."""
    if stream is None:
        stream = sys.stdin
    try:
        if not stream.isatty():
            return False
        ready, _, _ = select.select([stream], [], [], 0)
    except (OSError, ValueError):
        return False
    return bool(ready)


_KEY_NAMES = {
    readchar.key.ESC: "esc",
    readchar.key.LF: "enter",
    readchar.key.CR: "enter",
    readchar.key.SPACE: "space",
    readchar.key.TAB: "tab",
    readchar.key.BACKSPACE: "backspace",
    readchar.key.UP: "arrow_up",
    readchar.key.DOWN: "arrow_down",
    readchar.key.LEFT: "arrow_left",
    readchar.key.RIGHT: "arrow_right",
}


def describe_key(key: str) -> str:
    """Map readchar key constants to readable names; other keys come back unchanged."""
    return _KEY_NAMES.get(key, key)


def read_key(stream: Optional[TextIO] = None) -> Optional[str]:
    """
    Read the keypress that key_available() reported on stream.

    Bytes come straight from the descriptor, so the terminal mode set up by
    terminal_raw_mode() is left alone and nothing pending is flushed. Every
    byte already buffered is consumed: an arrow key arrives whole and a lone
    Esc does not wait for a sequence that never comes.

    Returns:
        The key name or text, or None if stream is not a terminal or reading fails
    """
    if stream is None:
        stream = sys.stdin
    try:
        if not stream.isatty():
            return None
        data = os.read(stream.fileno(), KEY_READ_LIMIT)
    except (OSError, ValueError) as e:
        logger.debug("Key read failed: %s", e)
        return None
    if not data:
        return None
    return describe_key(data.decode("utf-8", errors="replace"))


class InputWatcher:
    """
    Poll-based stop token for the run loop.

    Args:
        terminal: Terminal collaborator providing key_available()/read_key()
    """

    def __init__(self, terminal: Any) -> None:
        self.terminal = terminal
        self._stop = threading.Event()
        self._previous_handler: Any = None
        self._installed = False

    def install(self) -> None:
        """Route SIGINT to the stop token. Only effective on the main thread."""
        if threading.current_thread() is not threading.main_thread():
            return
        self._previous_handler = signal.signal(signal.SIGINT, self._on_interrupt)
        self._installed = True

    def restore(self) -> None:
        """Put back the SIGINT handler replaced by install()."""
        if not self._installed:
            return
        signal.signal(signal.SIGINT, self._previous_handler)
        self._installed = False

    def _on_interrupt(self, _signum: int, _frame: Any) -> None:
        self._stop.set()

    def request_stop(self) -> None:
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def poll(self) -> bool:
        """Consume a pending keypress, if any, and report whether a stop is requested."""
        if not self._stop.is_set() and self.terminal.key_available():
            key = self.terminal.read_key()
            logger.debug("Stop requested by keypress %r", key)
            self._stop.set()
        return self._stop.is_set()

    def wait(self, seconds: float) -> bool:
        """
        Sleep up to seconds, returning early once a stop is requested.

        Returns:
            True if a stop was requested before or during the wait
        """
        deadline = time.monotonic() + max(0.0, seconds)
        while not self.poll():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            self._stop.wait(min(POLL_SLICE_SECONDS, remaining))
        return True
