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
Probe functionality for pingboard.

The Prober turns one ICMP echo attempt into a ResultSymbol. It is called
concurrently from worker threads, one call per host per round, and keeps no
state between calls. Every failure is captured and classified here so that
nothing escapes into the round scheduler.
"""

import logging
from typing import Callable, Optional, Tuple

from pingboard.history import (
    ERROR_RESULT,
    TIMEOUT_RESULT,
    UNREACHABLE_RESULT,
    UNROUTABLE_TARGET,
    ResultSymbol,
    reply,
)
from pingboard.ping_wrapper import PingCommandError, ping_once

logger = logging.getLogger(__name__)

PingFunction = Callable[[str], Tuple[str, Optional[float]]]


class Prober:
    """
    Issue a single echo request and classify its outcome.

    Args:
        ping_function: Callable performing one echo request and returning
            ("reply", rtt_ms) or ("timeout", None). Defaults to the
            platform ping command.
    """

    def __init__(self, ping_function: Optional[PingFunction] = None) -> None:
        self._ping = ping_function if ping_function is not None else ping_once

    def probe(self, target: str) -> ResultSymbol:
        """Probe target once. Never raises."""
        if target == UNROUTABLE_TARGET:
            return UNREACHABLE_RESULT
        try:
            status, latency_ms = self._ping(target)
        except PingCommandError as e:
            logger.warning("Error pinging %s (return code %s): %s", target, e.returncode, e)
            return ERROR_RESULT
        except OSError as e:
            logger.warning("Could not run ping for %s: %s", target, e)
            return UNREACHABLE_RESULT
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("Unexpected failure probing %s: %s", target, e, exc_info=True)
            return UNREACHABLE_RESULT

        if status == "reply" and latency_ms is not None:
            logger.debug("Reply from %s: rtt=%.3fms", target, latency_ms)
            return reply(latency_ms)
        if status == "timeout":
            logger.debug("No reply from %s", target)
            return TIMEOUT_RESULT
        logger.warning("Unrecognized ping outcome for %s: %r", target, status)
        return ERROR_RESULT
