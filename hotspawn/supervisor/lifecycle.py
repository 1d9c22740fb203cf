"""
Host process lifecycle hooks.

The supervisor does not touch global signal state itself; the host
injects a lifecycle object and the supervisor registers its cleanup
with it once, at construction.
"""

# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import atexit
import logging
import signal
import sys
from collections.abc import Callable, Iterable
from types import FrameType
from typing import Any, Protocol

logger = logging.getLogger(__name__)

Cleanup = Callable[[], None]


class HostLifecycle(Protocol):
    def register(self, cleanup: Cleanup) -> None: ...


class ProcessLifecycle:
    """Runs registered cleanups on SIGINT, SIGTERM and interpreter exit.

    After cleanup a signal keeps its usual effect: SIGINT raises
    KeyboardInterrupt, SIGTERM exits with status 128 + signum, and a
    previously installed Python handler is chained.
    """

    def __init__(
        self,
        signals: Iterable[signal.Signals] = (signal.SIGINT, signal.SIGTERM),
    ) -> None:
        self.signals = tuple(signals)
        self._cleanups: list[Cleanup] = []
        self._previous: dict[int, Any] = {}
        self._installed = False

    def register(self, cleanup: Cleanup) -> None:
        self._cleanups.append(cleanup)
        if not self._installed:
            self._install()

    def _install(self) -> None:
        for signum in self.signals:
            self._previous[signum] = signal.signal(signum, self._on_signal)
        atexit.register(self.run_cleanups)
        self._installed = True
        logger.debug("Lifecycle hooks installed for %s", [s.name for s in self.signals])

    def uninstall(self) -> None:
        if not self._installed:
            return
        for signum, previous in self._previous.items():
            signal.signal(signum, previous)
        atexit.unregister(self.run_cleanups)
        self._previous.clear()
        self._installed = False

    def run_cleanups(self) -> None:
        for cleanup in list(self._cleanups):
            try:
                cleanup()
            except Exception:
                logger.exception("Cleanup hook failed")

    def _on_signal(self, signum: int, frame: FrameType | None) -> None:
        logger.info("Received %s, cleaning up", signal.Signals(signum).name)
        self.run_cleanups()

        previous = self._previous.get(signum)
        if callable(previous) and previous is not signal.default_int_handler:
            previous(signum, frame)
            return
        if signum == signal.SIGINT:
            raise KeyboardInterrupt
        sys.exit(128 + signum)
