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
Run loop for pingboard.

The Engine validates hosts once, then repeats rounds of probe, render and
pace until a keypress or Ctrl-C is seen at a round boundary, and finally
restores the terminal.
"""

import contextlib
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Iterator, List, Optional, Sequence, TextIO

from pingboard.core import MAX_HOSTS, HostEntry, Resolver
from pingboard.history import UNROUTABLE_TARGET, HostRecord
from pingboard.input_keys import InputWatcher
from pingboard.pinger import Prober
from pingboard.scheduler import DEFAULT_MINIMUM_DELAY_MS, RoundScheduler
from pingboard.terminal import Terminal
from pingboard.ui_render import ResultRenderer, derive_result_count

logger = logging.getLogger(__name__)

STATE_VALIDATING = "validating"
STATE_DISPLAYING = "displaying"
STATE_TERMINATING = "terminating"


@contextlib.contextmanager
def console_logging_suspended() -> Iterator[None]:
    """
    Detach the root logger's console handlers while the dashboard owns the screen.

    Console output would land wherever the cursor is and scroll the in-place
    display. File handlers (--log-file) keep receiving records.
    """
    root = logging.getLogger()
    detached = [
        handler
        for handler in root.handlers
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler)
    ]
    for handler in detached:
        root.removeHandler(handler)
    try:
        yield
    finally:
        for handler in detached:
            root.addHandler(handler)


class Engine:
    """
    Compose resolver, prober, scheduler, renderer and input watcher.

    Args:
        hosts: (host, display_name) pairs in display order
        resolver: Resolver used once per host at startup
        terminal: Terminal owned by the engine for the whole run
        prober: Prober used for every round
        result_count: History length override (derived from terminal width if None)
        minimum_delay_ms: Floor for the pause between rounds
        use_color: Whether to emit ANSI colors
        report_stream: Where per-host validation lines are printed
    """

    def __init__(
        self,
        hosts: Sequence[HostEntry],
        resolver: Resolver,
        terminal: Terminal,
        prober: Optional[Prober] = None,
        result_count: Optional[int] = None,
        minimum_delay_ms: int = DEFAULT_MINIMUM_DELAY_MS,
        use_color: bool = True,
        report_stream: Optional[TextIO] = None,
    ) -> None:
        if not hosts:
            raise ValueError("At least one host is required.")
        if len(hosts) > MAX_HOSTS:
            raise ValueError(f"Host count exceeds the supported maximum ({len(hosts)} > {MAX_HOSTS}).")
        if result_count is not None and result_count < 1:
            raise ValueError("result_count must be at least 1.")
        if minimum_delay_ms < 1:
            raise ValueError("minimum_delay_ms must be at least 1.")
        self.hosts = list(hosts)
        self.resolver = resolver
        self.terminal = terminal
        self.prober = prober if prober is not None else Prober()
        self.result_count = result_count
        self.minimum_delay_ms = minimum_delay_ms
        self.use_color = use_color
        self.report_stream = report_stream if report_stream is not None else sys.stdout
        self.input_watcher = InputWatcher(terminal)
        self.records: List[HostRecord] = []
        self.state = STATE_VALIDATING
        self.rounds_completed = 0
        self.validation_report: List[str] = []

    def validate(self) -> List[HostRecord]:
        """Resolve every host once and build its record; unresolved hosts keep a row."""
        self.state = STATE_VALIDATING
        self.validation_report = []
        resolved = []
        for host, display_name in self.hosts:
            address = self.resolver.resolve(host)
            if address:
                logger.info("Resolved %s to %s", host, address)
                self._report(f"  ok       {display_name} ({address})")
            else:
                logger.warning("Host %s could not be resolved; it will be shown as unreachable", host)
                self._report(f"  invalid  {display_name} (could not resolve {host})")
                address = UNROUTABLE_TARGET
            resolved.append((display_name, address))

        names = [display_name for display_name, _ in resolved]
        if self.result_count is None:
            self.result_count = derive_result_count(self.terminal.width(), names)
        self.records = [HostRecord(name, address, self.result_count) for name, address in resolved]
        return self.records

    def _report(self, line: str) -> None:
        self.validation_report.append(line)
        print(line, file=self.report_stream)

    def run(self, max_rounds: Optional[int] = None) -> int:
        """
        Run until a stop is requested (or max_rounds rounds complete).

        Returns:
            Number of completed rounds

        Raises:
            TerminalCapabilityError: If the terminal cannot reposition the cursor
        """
        records = self.validate()
        renderer = ResultRenderer(
            self.terminal,
            [record.display_name for record in records],
            records[0].history.capacity,
            use_color=self.use_color,
            title=f"pingboard - {len(records)} host(s)",
        )
        with console_logging_suspended():
            renderer.start()
            self.state = STATE_DISPLAYING
            with ThreadPoolExecutor(max_workers=len(records), thread_name_prefix="probe") as executor:
                scheduler = RoundScheduler(self.prober, executor, self.minimum_delay_ms)
                self.input_watcher.install()
                try:
                    with self.terminal.raw_input():
                        self._loop(scheduler, renderer, records, max_rounds)
                finally:
                    self.state = STATE_TERMINATING
                    self.input_watcher.restore()
                    renderer.finish()

        # The dashboard cleared the startup report; repeat it below the final frame.
        for line in self.validation_report:
            print(line, file=self.report_stream)
        return self.rounds_completed

    def _loop(
        self,
        scheduler: RoundScheduler,
        renderer: ResultRenderer,
        records: List[HostRecord],
        max_rounds: Optional[int],
    ) -> None:
        while max_rounds is None or self.rounds_completed < max_rounds:
            if self.input_watcher.poll():
                return
            result = scheduler.run_round(records)
            renderer.render(records)
            self.rounds_completed += 1
            logger.debug(
                "Round %d complete; slowest=%s next delay=%dms",
                self.rounds_completed,
                result.slowest_latency_ms,
                result.delay_ms,
            )
            if max_rounds is not None and self.rounds_completed >= max_rounds:
                return
            if self.input_watcher.wait(result.delay_ms / 1000.0):
                return

    def request_stop(self) -> None:
        """Ask the loop to stop at the next round boundary."""
        self.input_watcher.request_stop()
