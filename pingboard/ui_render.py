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
pingboard UI Rendering Module

This module turns the host records into the fixed-layout dashboard: a header,
one row per host and a static legend. Rows are rewritten in place each round
at equal width, so the screen is never cleared after the first frame.
"""

import re
from typing import List, Optional, Sequence

from pingboard.history import SYMBOLS, HostRecord, ResultSymbol
from pingboard.terminal import Terminal, TerminalCapabilityError

ANSI_RESET = "\x1b[0m"
ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*m")

TIER_OK = "ok"
TIER_SLOW = "slow"
TIER_ALERT = "alert"

TIER_BACKGROUNDS = {
    TIER_OK: "\x1b[42;30m",  # Green background, black text
    TIER_SLOW: "\x1b[43;30m",  # Yellow background, black text
    TIER_ALERT: "\x1b[41;37m",  # Red background, white text
}
TIER_FOREGROUNDS = {
    TIER_OK: "\x1b[32m",  # Green
    TIER_SLOW: "\x1b[33m",  # Yellow
    TIER_ALERT: "\x1b[31m",  # Red
}
MUTED_COLOR = "\x1b[90m"  # Dark gray (bright black)

SLOW_THRESHOLD_MS = 250
ALERT_THRESHOLD_MS = 700
LATENCY_CAP_MS = 1000
LATENCY_WIDTH = 7
LATENCY_CAPPED_TEXT = "999+ms"
NAME_HEADER = "Host"
LATENCY_HEADER = "Latency"
RESPONSES_HEADER = "Responses"
COLUMN_SEPARATOR = " "

TITLE_LINE = 0
HEADER_LINE = 1
FIRST_ROW_LINE = 2

LEGEND_LINES = [
    f"{SYMBOLS['reply']} reply  {SYMBOLS['timeout']} timeout  {SYMBOLS['error']} error  (space) unreachable",
    "Press any key or Ctrl-C to stop",
]


# ============================================================================
# ANSI/Text Utility Functions
# ============================================================================


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return ANSI_ESCAPE_RE.sub("", text)


def visible_len(text: str) -> int:
    """Get the visible length of text (excluding ANSI codes)."""
    return len(strip_ansi(text))


def colorize(text: str, color: Optional[str], use_color: bool) -> str:
    """Wrap text in an ANSI color sequence when color is enabled."""
    if not use_color or not color:
        return text
    return f"{color}{text}{ANSI_RESET}"


# ============================================================================
# Classification
# ============================================================================


def latency_tier(symbol: Optional[ResultSymbol]) -> Optional[str]:
    """Map an outcome to its color tier; None when nothing was recorded yet."""
    if symbol is None:
        return None
    if not symbol.is_reply or symbol.latency_ms is None:
        return TIER_ALERT
    if symbol.latency_ms > ALERT_THRESHOLD_MS:
        return TIER_ALERT
    if symbol.latency_ms > SLOW_THRESHOLD_MS:
        return TIER_SLOW
    return TIER_OK


def format_latency(symbol: Optional[ResultSymbol]) -> str:
    """Fixed-width latency text for the latest outcome; dashes for anything but a reply."""
    if symbol is None or not symbol.is_reply or symbol.latency_ms is None:
        return ("-" * (LATENCY_WIDTH - 1)).rjust(LATENCY_WIDTH)
    if symbol.latency_ms >= LATENCY_CAP_MS:
        return LATENCY_CAPPED_TEXT.rjust(LATENCY_WIDTH)
    return f"{int(symbol.latency_ms)}ms".rjust(LATENCY_WIDTH)


# ============================================================================
# Layout
# ============================================================================


def compute_name_width(names: Sequence[str]) -> int:
    return max([len(NAME_HEADER)] + [len(name) for name in names])


def derive_result_count(term_width: int, names: Sequence[str]) -> int:
    """
    Number of history columns that fit beside the name and latency columns.

    One column is left spare so writing the last character never wraps.
    """
    used = compute_name_width(names) + LATENCY_WIDTH + 2 * len(COLUMN_SEPARATOR) + 1
    return max(1, term_width - used)


def build_header(name_width: int, result_count: int) -> str:
    responses = RESPONSES_HEADER[:result_count].ljust(result_count)
    return COLUMN_SEPARATOR.join([NAME_HEADER.ljust(name_width), LATENCY_HEADER.rjust(LATENCY_WIDTH), responses])


def build_history_text(record: HostRecord, result_count: int, use_color: bool) -> str:
    """Render history oldest to newest; only the newest symbol carries its outcome color."""
    symbols = list(record.history)
    if not symbols:
        return " " * result_count
    older = "".join(symbol.char for symbol in symbols[:-1])
    newest = symbols[-1]
    colored_older = colorize(older, MUTED_COLOR, use_color) if older else ""
    colored_newest = colorize(newest.char, TIER_FOREGROUNDS.get(latency_tier(newest) or ""), use_color)
    return colored_older + colored_newest + " " * (result_count - len(symbols))


def build_row(record: HostRecord, name_width: int, result_count: int, use_color: bool) -> str:
    """One host row; its visible width is identical for every host and every round."""
    latest = record.history.latest()
    tier = latency_tier(latest)
    name = colorize(record.display_name.ljust(name_width), TIER_BACKGROUNDS.get(tier or ""), use_color)
    return COLUMN_SEPARATOR.join(
        [name, format_latency(latest), build_history_text(record, result_count, use_color)]
    )


# ============================================================================
# Renderer
# ============================================================================


class ResultRenderer:
    """
    Draw the dashboard onto a Terminal.

    The header and legend are drawn once by start(); render() only
    overwrites the host rows at their fixed screen lines.
    """

    def __init__(
        self,
        terminal: Terminal,
        names: Sequence[str],
        result_count: int,
        use_color: bool = True,
        title: str = "pingboard",
    ) -> None:
        self.terminal = terminal
        self.result_count = result_count
        self.use_color = use_color
        self.title = title
        self.name_width = compute_name_width(names)
        self.host_count = len(names)
        self.header = build_header(self.name_width, result_count)
        self.row_width = visible_len(self.header)

    @property
    def legend_line(self) -> int:
        """Screen line of the first legend line (one blank line below the rows)."""
        return FIRST_ROW_LINE + self.host_count + 1

    def start(self) -> None:
        """Check cursor support, then clear once and draw the static frame."""
        if not self.terminal.supports_cursor():
            raise TerminalCapabilityError(
                "This terminal does not support cursor positioning; run pingboard in an interactive terminal."
            )
        self.terminal.clear_screen()
        self._write_line(TITLE_LINE, self.title)
        self._write_line(HEADER_LINE, self.header)
        for index, line in enumerate(LEGEND_LINES):
            self._write_line(self.legend_line + index, line)
        self.terminal.flush()

    def render(self, records: Sequence[HostRecord]) -> None:
        """Overwrite every host row in place, in input order."""
        for index, row in enumerate(self.build_rows(records)):
            self._write_line(FIRST_ROW_LINE + index, row)
        self.terminal.flush()

    def build_rows(self, records: Sequence[HostRecord]) -> List[str]:
        return [build_row(record, self.name_width, self.result_count, self.use_color) for record in records]

    def finish(self) -> None:
        """Park the cursor below the legend so the shell prompt starts on a clean line."""
        self.terminal.move_cursor(0, self.legend_line + len(LEGEND_LINES))
        self.terminal.write("\n")
        self.terminal.flush()

    def _write_line(self, line: int, text: str) -> None:
        self.terminal.move_cursor(0, line)
        self.terminal.write(text)
