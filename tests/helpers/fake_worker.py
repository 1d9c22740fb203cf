# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0
"""In-process stand-ins for worker processes.

``FakeSpawner`` replaces ``WorkerHandle.spawn`` in supervisor tests so
that restarts can be driven step by step without real subprocesses.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import AsyncIterator, Callable

from hotspawn.config import WorkerConfig
from hotspawn.exceptions import SpawnFailure
from hotspawn.supervisor.channel import ListeningAddress, LoadMessage, WorkerEvent

_pids = itertools.count(4000)


class FakeWorkerHandle:
    """Duck-typed ``WorkerHandle`` driven by the test."""

    def __init__(self) -> None:
        self.pid = next(_pids)
        self.loaded: LoadMessage | None = None
        self.terminated = False
        self.killed = False
        self.channel_closed = False
        self._exit: asyncio.Future[int] = asyncio.get_running_loop().create_future()
        self._events: asyncio.Queue[WorkerEvent | None] = asyncio.Queue()

    @property
    def returncode(self) -> int | None:
        return self._exit.result() if self._exit.done() else None

    def is_alive(self) -> bool:
        return not self._exit.done()

    async def send_load(self, message: LoadMessage) -> None:
        self.loaded = message

    async def events(self) -> AsyncIterator[WorkerEvent]:
        while True:
            event = await self._events.get()
            if event is None:
                return
            yield event

    def emit(self, event: str, host: str = "127.0.0.1", port: int = 8000) -> None:
        """Send an event line as the worker would."""
        self._events.put_nowait(WorkerEvent(event, ListeningAddress(host, port)))

    def exit(self, code: int = 0) -> None:
        """Make the worker process exit with *code*."""
        if not self._exit.done():
            self._exit.set_result(code)
            self._events.put_nowait(None)

    def terminate(self) -> None:
        self.terminated = True
        # Exit is observed on a later loop iteration, like a real SIGTERM.
        asyncio.get_running_loop().call_soon(self.exit, -15)

    def kill(self) -> None:
        self.killed = True
        self.exit(-9)

    async def wait(self) -> int:
        return await asyncio.shield(self._exit)

    async def stop(self, timeout: float = 5.0) -> int:
        if self.is_alive():
            self.terminate()
        return await self.wait()

    def close_channel(self) -> None:
        self.channel_closed = True


class FakeSpawner:
    """Spawner that hands out ``FakeWorkerHandle`` objects.

    Records every handle and counts spawns that happened while an
    earlier worker was still alive.
    """

    def __init__(self) -> None:
        self.handles: list[FakeWorkerHandle] = []
        self.configs: list[WorkerConfig] = []
        self.overlapping_spawns = 0
        self.fail_next = False
        self.gate: asyncio.Event | None = None
        self.handle_class: type[FakeWorkerHandle] = FakeWorkerHandle

    async def __call__(self, config: WorkerConfig) -> FakeWorkerHandle:
        self.configs.append(config)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_next:
            self.fail_next = False
            raise SpawnFailure("cannot start worker")
        if any(h.is_alive() for h in self.handles):
            self.overlapping_spawns += 1
        handle = self.handle_class()
        self.handles.append(handle)
        return handle

    @property
    def last(self) -> FakeWorkerHandle:
        return self.handles[-1]


class FakeLifecycle:
    """Host lifecycle that records cleanups instead of hooking signals."""

    def __init__(self) -> None:
        self.cleanups: list[Callable[[], None]] = []

    def register(self, cleanup: Callable[[], None]) -> None:
        self.cleanups.append(cleanup)

    def shutdown(self) -> None:
        for cleanup in self.cleanups:
            cleanup()


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the loop until *predicate* holds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.001)


async def settle(iterations: int = 20) -> None:
    """Let pending callbacks and tasks run."""
    for _ in range(iterations):
        await asyncio.sleep(0)
