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
# Review for correctness and security.

"""
Unit tests for pingboard.engine.

The engine runs against a recording terminal, a dictionary resolver and
scripted probers, so whole runs complete without network or tty access.
"""

import contextlib
import io
import logging
import os
import sys
import tempfile
import unittest
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from pingboard.cli import _configure_logging  # noqa: E402  # pylint: disable=wrong-import-position
from pingboard.engine import (  # noqa: E402  # pylint: disable=wrong-import-position
    STATE_DISPLAYING,
    STATE_TERMINATING,
    STATE_VALIDATING,
    Engine,
)
from pingboard.history import (  # noqa: E402  # pylint: disable=wrong-import-position
    ERROR_RESULT,
    TIMEOUT_RESULT,
    UNREACHABLE_RESULT,
    UNROUTABLE_TARGET,
    reply,
)
from pingboard.ping_wrapper import PingCommandError  # noqa: E402  # pylint: disable=wrong-import-position
from pingboard.pinger import Prober  # noqa: E402  # pylint: disable=wrong-import-position
from pingboard.terminal import TerminalCapabilityError  # noqa: E402  # pylint: disable=wrong-import-position
from pingboard.ui_render import TIER_ALERT, TIER_OK, latency_tier, strip_ansi  # noqa: E402


class FakeTerminal:
    """Terminal double that keeps the text written to each screen line."""

    def __init__(self, width=60, cursor=True, keys=None):
        self._width = width
        self.cursor = cursor
        self.keys = list(keys or [])
        self.lines = {}
        self.current_line = 0
        self.raw_entered = 0
        self.raw_exited = 0

    def width(self):
        return self._width

    def supports_cursor(self):
        return self.cursor

    def move_cursor(self, x, y):
        self.current_line = y
        self.lines[y] = ""

    def write(self, text):
        self.lines[self.current_line] = self.lines.get(self.current_line, "") + text

    def flush(self):
        pass

    def clear_screen(self):
        self.lines = {}

    @contextlib.contextmanager
    def raw_input(self):
        self.raw_entered += 1
        try:
            yield
        finally:
            self.raw_exited += 1

    def key_available(self):
        return bool(self.keys)

    def read_key(self):
        return self.keys.pop(0)


class DictResolver:
    def __init__(self, addresses):
        self.addresses = addresses
        self.calls = []

    def resolve(self, name):
        self.calls.append(name)
        return self.addresses.get(name)


class ScriptedProber:
    """Prober double returning a fixed outcome per target and counting calls."""

    def __init__(self, outcomes, on_probe=None):
        self.outcomes = outcomes
        self.on_probe = on_probe
        self.calls = []

    def probe(self, target):
        self.calls.append(target)
        if self.on_probe is not None:
            self.on_probe(target)
        return self.outcomes[target]


def make_engine(hosts, addresses, prober, terminal=None, **kwargs):
    engine = Engine(
        hosts,
        DictResolver(addresses),
        terminal if terminal is not None else FakeTerminal(),
        prober,
        report_stream=io.StringIO(),
        **kwargs,
    )
    # Skip the real pacing sleep between rounds.
    engine.input_watcher.wait = MagicMock(return_value=False)
    return engine


class TestEngineConstruction(unittest.TestCase):
    """Test cases for Engine argument validation"""

    def test_requires_hosts(self):
        with self.assertRaises(ValueError):
            Engine([], DictResolver({}), FakeTerminal())

    def test_host_limit(self):
        hosts = [(f"h{i}", f"h{i}") for i in range(129)]
        with self.assertRaises(ValueError):
            Engine(hosts, DictResolver({}), FakeTerminal())

    def test_rejects_bad_result_count_and_delay(self):
        with self.assertRaises(ValueError):
            Engine([("a", "a")], DictResolver({}), FakeTerminal(), result_count=0)
        with self.assertRaises(ValueError):
            Engine([("a", "a")], DictResolver({}), FakeTerminal(), minimum_delay_ms=0)

    def test_initial_state(self):
        engine = Engine([("a", "a")], DictResolver({}), FakeTerminal())
        self.assertEqual(engine.state, STATE_VALIDATING)


class TestEngineValidation(unittest.TestCase):
    """Test cases for the validation phase"""

    def test_resolves_each_host_once_and_keeps_failures(self):
        resolver = DictResolver({"router": "192.168.1.1"})
        report = io.StringIO()
        engine = Engine(
            [("router", "gw"), ("bogus.invalid", "bogus.invalid")],
            resolver,
            FakeTerminal(width=60),
            report_stream=report,
        )
        records = engine.validate()
        self.assertEqual(resolver.calls, ["router", "bogus.invalid"])
        self.assertEqual([r.display_name for r in records], ["gw", "bogus.invalid"])
        self.assertEqual(records[0].target, "192.168.1.1")
        self.assertEqual(records[1].target, UNROUTABLE_TARGET)
        self.assertIn("could not resolve bogus.invalid", report.getvalue())
        # 60 - name(13) - latency(7) - 2 - 1
        self.assertEqual(engine.result_count, 37)
        self.assertEqual(records[0].history.capacity, 37)

    def test_result_count_override(self):
        engine = Engine([("a", "a")], DictResolver({"a": "192.0.2.1"}), FakeTerminal(), result_count=5, report_stream=io.StringIO())
        self.assertEqual(engine.validate()[0].history.capacity, 5)


class TestEngineRun(unittest.TestCase):
    """Test cases for the run loop"""

    def test_three_hosts_all_fast(self):
        hosts = [("router", "router"), ("wan", "wan"), ("vpn", "vpn")]
        addresses = {"router": "192.0.2.1", "wan": "192.0.2.2", "vpn": "192.0.2.3"}
        prober = ScriptedProber({address: reply(10.0) for address in addresses.values()})
        terminal = FakeTerminal()
        engine = make_engine(hosts, addresses, prober, terminal=terminal)

        self.assertEqual(engine.run(max_rounds=2), 2)
        for index, record in enumerate(engine.records):
            self.assertEqual(len(record.history), 2)
            self.assertEqual(latency_tier(record.history.latest()), TIER_OK)
            self.assertIn("10ms ..", strip_ansi(terminal.lines[2 + index]))
        engine.input_watcher.wait.assert_called_once_with(0.99)
        self.assertEqual(engine.state, STATE_TERMINATING)
        self.assertEqual((terminal.raw_entered, terminal.raw_exited), (1, 1))

    def test_seven_rounds_into_five_slots(self):
        prober = ScriptedProber({"192.0.2.1": reply(5.0)})
        engine = make_engine([("a", "a")], {"a": "192.0.2.1"}, prober, result_count=5)
        engine.run(max_rounds=7)
        self.assertEqual(len(engine.records[0].history), 5)
        self.assertEqual(len(prober.calls), 7)

    def test_unresolved_host_reports_unreachable_every_round(self):
        ping = MagicMock(return_value=("reply", 1.0))
        terminal = FakeTerminal()
        engine = make_engine([("bogus.invalid", "bogus.invalid")], {}, Prober(ping), terminal=terminal)
        engine.run(max_rounds=4)

        record = engine.records[0]
        self.assertEqual(list(record.history), [UNREACHABLE_RESULT] * 4)
        self.assertEqual(latency_tier(record.history.latest()), TIER_ALERT)
        self.assertIn("------", strip_ansi(terminal.lines[2]))
        ping.assert_not_called()

    def test_keypress_before_first_round_stops_without_probing(self):
        prober = ScriptedProber({"192.0.2.1": reply(5.0)})
        engine = make_engine([("a", "a")], {"a": "192.0.2.1"}, prober, terminal=FakeTerminal(keys=["q"]))
        self.assertEqual(engine.run(), 0)
        self.assertEqual(prober.calls, [])

    def test_stop_mid_round_completes_the_round(self):
        engine = None

        def stop_during_probe(_target):
            engine.request_stop()

        prober = ScriptedProber({"192.0.2.1": reply(5.0), "192.0.2.2": TIMEOUT_RESULT}, on_probe=stop_during_probe)
        engine = make_engine([("a", "a"), ("b", "b")], {"a": "192.0.2.1", "b": "192.0.2.2"}, prober)

        self.assertEqual(engine.run(), 1)
        self.assertEqual([len(record.history) for record in engine.records], [1, 1])
        self.assertEqual(engine.records[0].history.latest(), reply(5.0))
        self.assertEqual(engine.records[1].history.latest(), TIMEOUT_RESULT)

    def test_stop_during_pacing_wait(self):
        prober = ScriptedProber({"192.0.2.1": reply(5.0)})
        engine = make_engine([("a", "a")], {"a": "192.0.2.1"}, prober)
        engine.input_watcher.wait = MagicMock(side_effect=[False, True])
        self.assertEqual(engine.run(), 2)

    def test_capability_failure_is_fatal_before_probing(self):
        prober = ScriptedProber({"192.0.2.1": reply(5.0)})
        terminal = FakeTerminal(cursor=False)
        engine = make_engine([("a", "a")], {"a": "192.0.2.1"}, prober, terminal=terminal)
        with self.assertRaises(TerminalCapabilityError):
            engine.run()
        self.assertEqual(prober.calls, [])
        self.assertEqual(terminal.raw_entered, 0)
        self.assertNotEqual(engine.state, STATE_DISPLAYING)


class TestEngineLogging(unittest.TestCase):
    """Log output while the dashboard owns the terminal"""

    def setUp(self):
        root = logging.getLogger()
        self.addCleanup(root.setLevel, root.level)

    def _failing_engine(self, terminal=None):
        ping = MagicMock(side_effect=PingCommandError("ping received an ICMP error (unreachable)", returncode=1))
        return make_engine([("gw", "gw")], {"gw": "192.0.2.1"}, Prober(ping), terminal=terminal)

    def test_console_stays_quiet_while_displaying(self):
        with patch("sys.stderr", new_callable=io.StringIO) as stderr, patch.object(logging.getLogger(), "handlers", []):
            _configure_logging("WARNING", None)
            engine = self._failing_engine()
            engine.run(max_rounds=3)
            self.assertEqual(list(engine.records[0].history), [ERROR_RESULT] * 3)
            self.assertEqual(stderr.getvalue(), "")

            logging.getLogger("pingboard.pinger").warning("after the dashboard")
            self.assertIn("after the dashboard", stderr.getvalue())

    def test_log_file_still_receives_warnings(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = os.path.join(tmpdir, "pingboard.log")
            with patch("sys.stderr", new_callable=io.StringIO) as stderr, patch.object(logging.getLogger(), "handlers", []):
                _configure_logging("WARNING", log_path)
                try:
                    self._failing_engine().run(max_rounds=2)
                finally:
                    for handler in logging.getLogger().handlers:
                        handler.close()
            self.assertEqual(stderr.getvalue(), "")
            with open(log_path, "r", encoding="utf-8") as fh:
                self.assertIn("192.0.2.1", fh.read())

    def test_console_handlers_restored_after_capability_failure(self):
        handler = logging.StreamHandler(io.StringIO())
        with patch.object(logging.getLogger(), "handlers", [handler]):
            with self.assertRaises(TerminalCapabilityError):
                self._failing_engine(terminal=FakeTerminal(cursor=False)).run()
            self.assertEqual(logging.getLogger().handlers, [handler])


class TestEngineReport(unittest.TestCase):
    """Validation report around the dashboard"""

    def test_report_repeated_after_dashboard(self):
        report = io.StringIO()
        engine = Engine(
            [("router", "gw"), ("bogus.invalid", "bogus.invalid")],
            DictResolver({"router": "192.0.2.1"}),
            FakeTerminal(),
            ScriptedProber({"192.0.2.1": reply(5.0), UNROUTABLE_TARGET: UNREACHABLE_RESULT}),
            report_stream=report,
        )
        engine.input_watcher.wait = MagicMock(return_value=False)
        engine.run(max_rounds=1)
        output = report.getvalue()
        self.assertEqual(output.count("  ok       gw (192.0.2.1)"), 2)
        self.assertEqual(output.count("  invalid  bogus.invalid (could not resolve bogus.invalid)"), 2)
        self.assertEqual(engine.validation_report, output.splitlines()[:2])

    def test_result_count_comes_from_records(self):
        engine = make_engine([("a", "a")], {"a": "192.0.2.1"}, ScriptedProber({"192.0.2.1": reply(5.0)}), result_count=4)
        terminal = engine.terminal
        engine.run(max_rounds=1)
        # Name "a" pads to the header width (4) and the history strip is 4 wide.
        self.assertEqual(strip_ansi(terminal.lines[2]), "a        5ms .   ")


if __name__ == "__main__":
    unittest.main()
