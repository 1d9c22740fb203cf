"""
Lifecycle events observable by consumers of the supervisor.
"""

# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

CLOSING = "closing"
LISTENING = "listening"
RESTART_COMPLETE = "restart-complete"

EVENTS = frozenset({CLOSING, LISTENING, RESTART_COMPLETE})

Listener = Callable[..., None]


class LifecycleEvents:
    """Named events with plain callback listeners.

    Listeners run synchronously in registration order; an exception in
    one is logged and does not prevent the others from running.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {name: [] for name in EVENTS}

    def _check(self, event: str) -> list[Listener]:
        try:
            return self._listeners[event]
        except KeyError:
            raise ValueError(f"Unknown event: {event}") from None

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a function that unregisters it."""
        self._check(event).append(listener)
        return lambda: self.off(event, listener)

    def once(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register *listener* for the next emission only."""
        def _wrapper(*args: Any) -> None:
            self.off(event, _wrapper)
            listener(*args)

        return self.on(event, _wrapper)

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._check(event)
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: str, *args: Any) -> None:
        for listener in list(self._check(event)):
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener for '%s' failed", event)

    async def wait_for(self, event: str) -> Any:
        """Wait for the next *event* and return its payload (or None)."""
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        def _resolve(*args: Any) -> None:
            if not future.done():
                future.set_result(args[0] if args else None)

        unsubscribe = self.once(event, _resolve)
        try:
            return await future
        finally:
            unsubscribe()
