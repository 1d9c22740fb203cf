# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

"""Consumer-facing routing contract.

A front end never reads the supervisor's address directly: an
:class:`AddressTracker` follows the ``closing`` / ``listening`` events,
the router function reads the tracker, and the gate middleware holds
requests while no worker is listening.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp

from hotspawn.supervisor.channel import ListeningAddress
from hotspawn.supervisor.events import CLOSING, LISTENING, LifecycleEvents

if TYPE_CHECKING:
    from hotspawn.supervisor.manager import WorkerSupervisor

logger = logging.getLogger("hotspawn.server.routing")

STATUS_PATH = "/_hotspawn/status"


class AddressTracker:
    """Event-driven view of the worker address."""

    def __init__(self, events: LifecycleEvents) -> None:
        self._address: ListeningAddress | None = None
        self._ready = asyncio.Event()
        self._unsubscribe = [
            events.on(CLOSING, self._on_closing),
            events.on(LISTENING, self._on_listening),
        ]

    @property
    def address(self) -> ListeningAddress | None:
        return self._address

    def _on_closing(self) -> None:
        self._address = None
        self._ready.clear()

    def _on_listening(self, address: ListeningAddress) -> None:
        self._address = address
        self._ready.set()

    async def wait(self, timeout: float | None = None) -> ListeningAddress:
        """Wait until a worker listens.

        Raises:
            TimeoutError: No worker became ready within *timeout* seconds
        """
        async with asyncio.timeout(timeout):
            while self._address is None:
                await self._ready.wait()
            return self._address

    def close(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe.clear()


class ReadinessGateMiddleware(BaseHTTPMiddleware):
    """Defer requests until the worker listens; 503 after *timeout*."""

    def __init__(
        self,
        app: ASGIApp,
        tracker: AddressTracker,
        timeout: float = 30.0,
        exempt_paths: frozenset[str] = frozenset({STATUS_PATH}),
    ) -> None:
        super().__init__(app)
        self.tracker = tracker
        self.timeout = timeout
        self.exempt_paths = exempt_paths

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        if request.url.path not in self.exempt_paths and self.tracker.address is None:
            logger.debug("Holding %s %s until the worker listens", request.method, request.url.path)
            try:
                await self.tracker.wait(self.timeout)
            except TimeoutError:
                logger.warning("Worker not ready after %.1fs; rejecting %s", self.timeout, request.url.path)
                return JSONResponse(
                    {"error": "worker not ready"},
                    status_code=503,
                    headers={"Retry-After": "1"},
                )
        return await call_next(request)


@dataclass
class RoutingConfig:
    """What a proxy front end needs: a per-request router and a gate."""

    router: Callable[..., str | None]
    middleware: Middleware
    tracker: AddressTracker


def routing_config(supervisor: WorkerSupervisor, ready_timeout: float = 30.0) -> RoutingConfig:
    """Build the routing contract for *supervisor*."""
    tracker = AddressTracker(supervisor.events)

    def router(request: Request | None = None) -> str | None:
        address = tracker.address
        return address.url if address is not None else None

    return RoutingConfig(
        router=router,
        middleware=Middleware(ReadinessGateMiddleware, tracker=tracker, timeout=ready_timeout),
        tracker=tracker,
    )
