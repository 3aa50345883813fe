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
Round scheduling for pingboard.

A round probes every host once in parallel, waits for all of them, then
applies the outcomes to the host records from a single thread. The pacing
policy derives the pause before the next round from the slowest reply so
rounds stay close to a one second cadence.
"""

import logging
import math
from concurrent.futures import ALL_COMPLETED, Executor, Future, wait
from typing import List, NamedTuple, Optional, Sequence

from pingboard.history import UNREACHABLE_RESULT, HostRecord, ResultSymbol
from pingboard.pinger import Prober

logger = logging.getLogger(__name__)

TARGET_CADENCE_MS = 1000
DEFAULT_MINIMUM_DELAY_MS = 250


class RoundResult(NamedTuple):
    """Outcome of one completed round."""

    symbols: List[ResultSymbol]
    slowest_latency_ms: Optional[float]
    delay_ms: int


def compute_pacing_delay_ms(
    slowest_latency_ms: Optional[float],
    minimum_delay_ms: int = DEFAULT_MINIMUM_DELAY_MS,
    target_cadence_ms: int = TARGET_CADENCE_MS,
) -> int:
    """
    Compute the pause before the next round.

    Args:
        slowest_latency_ms: Slowest successful reply this round, or None
            when no host replied
        minimum_delay_ms: Floor applied to every delay
        target_cadence_ms: Desired spacing between round starts

    Returns:
        Whole milliseconds to wait, never below minimum_delay_ms
    """
    if slowest_latency_ms is None or slowest_latency_ms >= target_cadence_ms:
        return minimum_delay_ms
    remaining = target_cadence_ms - slowest_latency_ms
    if not math.isfinite(remaining) or remaining <= 0:
        return minimum_delay_ms
    return max(minimum_delay_ms, int(math.floor(remaining)))


def slowest_reply_ms(symbols: Sequence[ResultSymbol]) -> Optional[float]:
    """Return the largest reply latency among symbols, or None if none replied."""
    latencies = [symbol.latency_ms for symbol in symbols if symbol.is_reply and symbol.latency_ms is not None]
    return max(latencies, default=None)


class RoundScheduler:
    """
    Run probing rounds across a fixed set of host records.

    Args:
        prober: Prober used for every host
        executor: Executor providing one worker per host
        minimum_delay_ms: Floor for the pacing delay
    """

    def __init__(self, prober: Prober, executor: Executor, minimum_delay_ms: int = DEFAULT_MINIMUM_DELAY_MS) -> None:
        self.prober = prober
        self.executor = executor
        self.minimum_delay_ms = minimum_delay_ms

    def run_round(self, records: Sequence[HostRecord]) -> RoundResult:
        """Probe every record once, wait for all probes, then record the outcomes."""
        futures = [self.executor.submit(self.prober.probe, record.target) for record in records]
        # Barrier: nothing is applied until every probe has concluded.
        wait(futures, return_when=ALL_COMPLETED)

        symbols = [self._collect(record, future) for record, future in zip(records, futures)]
        for record, symbol in zip(records, symbols):
            record.record(symbol)

        slowest = slowest_reply_ms(symbols)
        delay_ms = compute_pacing_delay_ms(slowest, self.minimum_delay_ms)
        return RoundResult(symbols, slowest, delay_ms)

    @staticmethod
    def _collect(record: HostRecord, future: "Future[ResultSymbol]") -> ResultSymbol:
        if future.cancelled():
            logger.warning("Probe for %s was cancelled", record.display_name)
            return UNREACHABLE_RESULT
        exc = future.exception()
        if exc is not None:
            logger.warning("Probe for %s faulted: %s", record.display_name, exc)
            return UNREACHABLE_RESULT
        result = future.result()
        if not isinstance(result, ResultSymbol):
            logger.warning("Probe for %s returned %r; recording as unreachable", record.display_name, result)
            return UNREACHABLE_RESULT
        return result
