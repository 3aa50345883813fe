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
Per-host result history for pingboard.

This module provides the classified probe outcome (ResultSymbol), the
fixed-capacity ring buffer that holds one symbol per round, and the
HostRecord that ties a display name and probe target to its history.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional

REPLY = "reply"
TIMEOUT = "timeout"
ERROR = "error"
UNREACHABLE = "unreachable"

SYMBOLS = {
    REPLY: ".",
    TIMEOUT: "x",
    ERROR: "?",
    UNREACHABLE: " ",
}

# Sentinel target for hosts that failed resolution. Probing it always
# reports Unreachable so the host keeps its row.
UNROUTABLE_TARGET = "0.0.0.0"


@dataclass(frozen=True)
class ResultSymbol:
    """Outcome of one probe of one host in one round."""

    status: str
    latency_ms: Optional[float] = None

    def __post_init__(self) -> None:
        if self.status not in SYMBOLS:
            raise ValueError(f"Unknown result status: {self.status!r}")
        if self.status == REPLY and self.latency_ms is None:
            raise ValueError("A reply must carry a latency.")

    @property
    def char(self) -> str:
        """Single display character for this outcome."""
        return SYMBOLS[self.status]

    @property
    def is_reply(self) -> bool:
        return self.status == REPLY


def reply(latency_ms: float) -> ResultSymbol:
    """Build a Reply symbol for the given round-trip time in milliseconds."""
    return ResultSymbol(REPLY, float(latency_ms))


TIMEOUT_RESULT = ResultSymbol(TIMEOUT)
ERROR_RESULT = ResultSymbol(ERROR)
UNREACHABLE_RESULT = ResultSymbol(UNREACHABLE)


class ResultHistory:
    """
    Fixed-capacity ring buffer of ResultSymbols.

    Slots are allocated once; appending past capacity overwrites the
    oldest entry in place. Iteration yields oldest to newest.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be at least 1.")
        self._slots: List[Optional[ResultSymbol]] = [None] * capacity
        self._start = 0
        self._size = 0

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def append(self, symbol: ResultSymbol) -> None:
        """Append a symbol at the tail, evicting the oldest when full."""
        capacity = len(self._slots)
        if self._size < capacity:
            self._slots[(self._start + self._size) % capacity] = symbol
            self._size += 1
            return
        self._slots[self._start] = symbol
        self._start = (self._start + 1) % capacity

    def latest(self) -> Optional[ResultSymbol]:
        """Return the most recently appended symbol, or None when empty."""
        if self._size == 0:
            return None
        return self._slots[(self._start + self._size - 1) % len(self._slots)]

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[ResultSymbol]:
        capacity = len(self._slots)
        for offset in range(self._size):
            symbol = self._slots[(self._start + offset) % capacity]
            if symbol is not None:
                yield symbol

    def __repr__(self) -> str:
        chars = "".join(symbol.char for symbol in self)
        return f"ResultHistory(capacity={self.capacity}, history={chars!r})"


class HostRecord:
    """
    Identity and rolling results for a single monitored host.

    display_name and target are fixed at construction. Only record()
    mutates the history and last latency, once per round.
    """

    def __init__(self, display_name: str, target: str, result_count: int) -> None:
        self._display_name = display_name
        self._target = target
        self.history = ResultHistory(result_count)
        self.last_latency_ms: Optional[float] = None

    @property
    def display_name(self) -> str:
        return self._display_name

    @property
    def target(self) -> str:
        return self._target

    @property
    def resolved(self) -> bool:
        return self._target != UNROUTABLE_TARGET

    def record(self, symbol: ResultSymbol) -> None:
        """Append this round's outcome and update the last latency."""
        self.history.append(symbol)
        self.last_latency_ms = symbol.latency_ms if symbol.is_reply else None

    def __repr__(self) -> str:
        return f"HostRecord({self._display_name!r}, {self._target!r})"
