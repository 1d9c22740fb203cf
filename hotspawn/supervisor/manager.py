"""
Worker Supervisor - lifecycle of the single worker process.
"""

# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from hotspawn.artifacts import ArtifactMap, BuildStats, build_artifact_map, entry_path, normalize_path
from hotspawn.config import WorkerConfig
from hotspawn.exceptions import BuildError, SpawnFailure, WorkerCrash
from hotspawn.supervisor.channel import (
    EVENT_LISTENING,
    EVENT_READY,
    ListeningAddress,
    LoadMessage,
)
from hotspawn.supervisor.coordinator import RestartCoordinator, RestartToken
from hotspawn.supervisor.events import CLOSING, LISTENING, RESTART_COMPLETE, LifecycleEvents
from hotspawn.supervisor.handle import WorkerHandle
from hotspawn.supervisor.lifecycle import HostLifecycle

logger = logging.getLogger(__name__)

Spawner = Callable[[WorkerConfig], Awaitable[WorkerHandle]]
RestartCallback = Callable[[Exception | None], None]


# ── State ──────────────────────────────────────────────────

class SupervisorState(Enum):
    """State of the supervised worker."""
    IDLE = "idle"               # No worker
    STARTING = "starting"       # Spawn in progress
    RUNNING = "running"         # Worker alive, not ready yet
    LISTENING = "listening"     # Worker accepting connections
    CLOSING = "closing"         # Worker being terminated


def _noop() -> None:
    pass


# ── Worker Supervisor ─────────────────────────────────────────────

class WorkerSupervisor:
    """
    Supervisor for the single worker process.

    Responsibilities:
    - Reload the worker on every successful watch-mode build
    - Serialize restarts: a new worker only after the old one exited
    - Track the worker's listening address
    - Emit ``closing`` / ``listening`` / ``restart-complete`` events

    All methods must be called from the event loop thread.
    """

    def __init__(
        self,
        config: WorkerConfig | None = None,
        *,
        lifecycle: HostLifecycle | None = None,
        spawner: Spawner | None = None,
    ):
        self.config = config or WorkerConfig()
        self.events = LifecycleEvents()
        self.state = SupervisorState.IDLE
        self.restart_count = 0

        self._spawner: Spawner = spawner or WorkerHandle.spawn
        self._coordinator = RestartCoordinator()
        self._handle: WorkerHandle | None = None
        self._address: ListeningAddress | None = None
        self._spawn_task: asyncio.Task | None = None
        self._closing_task: asyncio.Task | None = None
        self._ready_task: asyncio.Task | None = None
        self._exit_task: asyncio.Task | None = None

        if lifecycle is not None:
            lifecycle.register(self.terminate_now)

    @property
    def address(self) -> ListeningAddress | None:
        """Current listening address; only set while LISTENING."""
        return self._address

    @property
    def handle(self) -> WorkerHandle | None:
        return self._handle

    # ── Build integration ──────────────────────────────────

    def on_build_complete(
        self,
        stats: BuildStats,
        callback: RestartCallback | None = None,
    ) -> RestartToken | None:
        """
        Reload the worker with a finished build's output.

        Only acts in watch mode, and never for a build with errors: the
        running worker then keeps serving the previous build.

        Returns:
            The restart token, or None if no reload was started
        """
        if not stats.watching:
            logger.debug("Build finished outside watch mode; not reloading")
            return None
        if stats.has_errors:
            error = BuildError(
                "Build failed; keeping the current worker",
                errors=list(getattr(stats, "errors", [])),
            )
            logger.warning("%s (%d error(s))", error, len(error.errors))
            for line in error.errors:
                logger.warning("  %s", line)
            return None

        artifacts = build_artifact_map(stats.assets)
        return self.reload(artifacts, entry_path(stats), callback)

    # ── Reload / Close ──────────────────────────────────

    def reload(
        self,
        artifacts: ArtifactMap,
        entry: str,
        callback: RestartCallback | None = None,
    ) -> RestartToken:
        """
        Replace the worker with one running *entry* from *artifacts*.

        Closes the current worker first. If reloads overlap, only the
        latest one spawns a worker and only its *callback* fires. The
        callback receives None on success or the SpawnFailure.

        Raises:
            ValueError: If *entry* is not in *artifacts*
        """
        entry = normalize_path(entry)
        if entry not in artifacts:
            raise ValueError(f"Entry {entry} is not part of the build output")

        def _on_closed() -> None:
            self._begin_start(token, artifacts, entry, callback)

        token = self._coordinator.request_restart(_on_closed)
        logger.info("Reload requested (restart %d, %d artifacts)", token.id, len(artifacts))
        self._close(self._coordinator.fire)
        return token

    def close(self, done: Callable[[], None] | None = None) -> None:
        """
        Close the current worker; *done* runs once it has exited.

        A reload that has not spawned its worker yet is cancelled, so the
        supervisor ends up IDLE. *done* never runs synchronously: with
        nothing to close it is scheduled for the next loop iteration.
        Overlapping calls share one close.
        """
        self._coordinator.cancel()
        self._close(done)

    def _close(self, done: Callable[[], None] | None) -> None:
        loop = asyncio.get_running_loop()
        callback = done or _noop

        if self._closing_task is not None and not self._closing_task.done():
            self._closing_task.add_done_callback(lambda _t: callback())
            return

        if self.state is SupervisorState.IDLE and self._handle is None:
            loop.call_soon(callback)
            return

        self._address = None
        self.state = SupervisorState.CLOSING
        self.events.emit(CLOSING)

        self._closing_task = asyncio.ensure_future(self._close_worker())
        self._closing_task.add_done_callback(self._on_close_done)
        self._closing_task.add_done_callback(lambda _t: callback())

    async def aclose(self) -> None:
        """Close the worker and wait until it has exited."""
        done: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self.close(lambda: done.done() or done.set_result(None))
        await done

    def terminate_now(self) -> None:
        """Best-effort synchronous cleanup for host shutdown hooks."""
        self._coordinator.cancel()
        self._address = None
        handle = self._handle
        if handle is not None and handle.is_alive():
            logger.info("Terminating worker (PID %s) on host shutdown", handle.pid)
            handle.terminate()

    async def _close_worker(self) -> None:
        spawn_task = self._spawn_task
        if spawn_task is not None and not spawn_task.done():
            logger.debug("Waiting for in-flight spawn before closing")
            await asyncio.wait([spawn_task])

        self._cancel_task(self._ready_task)
        self._ready_task = None

        handle = self._handle
        if handle is not None:
            self._cancel_task(self._exit_task)
            self._exit_task = None
            if handle.is_alive():
                logger.info("Stopping worker (PID %s)", handle.pid)
                code = await handle.stop(self.config.kill_timeout)
                logger.info("Worker exited (PID %s, code=%s)", handle.pid, code)
            else:
                logger.debug("Worker %s already exited", handle.pid)
            handle.close_channel()
            self._handle = None

        self.state = SupervisorState.IDLE

    @staticmethod
    def _on_close_done(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("Closing the worker failed", exc_info=task.exception())

    @staticmethod
    def _cancel_task(task: asyncio.Task | None) -> None:
        if task is not None and not task.done():
            task.cancel()

    # ── Start ──────────────────────────────────────────────

    def _begin_start(
        self,
        token: RestartToken,
        artifacts: ArtifactMap,
        entry: str,
        callback: RestartCallback | None,
    ) -> None:
        self.state = SupervisorState.STARTING
        self._spawn_task = asyncio.ensure_future(
            self._start_worker(token, artifacts, entry, callback)
        )

    async def _start_worker(
        self,
        token: RestartToken,
        artifacts: ArtifactMap,
        entry: str,
        callback: RestartCallback | None,
    ) -> None:
        try:
            handle = await self._spawner(self.config)
        except SpawnFailure as e:
            logger.error("Failed to spawn worker: %s", e)
            if self.state is SupervisorState.STARTING:
                self.state = SupervisorState.IDLE
            self._complete(token, callback, e)
            return

        self._handle = handle
        self.restart_count += 1
        if self.state is not SupervisorState.STARTING:
            # A close arrived while spawning; it terminates this worker.
            logger.debug("Worker %s superseded before it started", handle.pid)
            return
        if not self._coordinator.is_active(token):
            logger.debug("Restart %d cancelled while spawning; stopping worker %s", token.id, handle.pid)
            self._close(None)
            return

        self.state = SupervisorState.RUNNING
        self._exit_task = asyncio.ensure_future(self._watch_exit(handle))
        self._ready_task = asyncio.ensure_future(self._await_readiness(handle))

        try:
            await handle.send_load(LoadMessage(entry=entry, artifacts=artifacts))
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.warning("Worker %s exited before receiving its build: %s", handle.pid, e)

        if self.state is SupervisorState.CLOSING:
            return
        if (
            handle is not self._handle
            or self.state is SupervisorState.IDLE
            or not handle.is_alive()
        ):
            crash = WorkerCrash(
                f"Worker {handle.pid} exited before it started (code={handle.returncode})",
                exit_code=handle.returncode,
            )
            self._complete(token, callback, crash)
            return
        self._complete(token, callback, None)

    def _complete(
        self,
        token: RestartToken,
        callback: RestartCallback | None,
        error: Exception | None,
    ) -> None:
        if not self._coordinator.is_active(token):
            logger.debug("Dropping completion of superseded restart %d", token.id)
            return
        if error is None and self._handle is not None:
            self.events.emit(RESTART_COMPLETE, self._handle.pid)
        if callback is not None:
            try:
                callback(error)
            except Exception:
                logger.exception("Restart callback failed")

    # ── Worker monitoring ──────────────────────────────────

    async def _await_readiness(self, handle: WorkerHandle) -> None:
        wanted = EVENT_READY if self.config.wait_for_ready else EVENT_LISTENING
        async for event in handle.events():
            if event.event != wanted:
                logger.debug("Worker %s sent '%s' (waiting for '%s')", handle.pid, event.event, wanted)
                continue
            if event.address is None:
                logger.warning("Worker %s sent '%s' without an address", handle.pid, event.event)
                continue
            if handle is not self._handle or self.state is not SupervisorState.RUNNING:
                logger.debug("Ignoring late readiness from worker %s", handle.pid)
                return

            self._address = event.address
            self.state = SupervisorState.LISTENING
            logger.info(
                "Worker %s listening on %s:%s", handle.pid, event.address.host, event.address.port,
            )
            self.events.emit(LISTENING, event.address)
            return

    async def _watch_exit(self, handle: WorkerHandle) -> None:
        code = await handle.wait()
        if handle is not self._handle or self.state in (
            SupervisorState.CLOSING, SupervisorState.IDLE,
        ):
            return

        crash = WorkerCrash(f"Worker {handle.pid} exited unexpectedly (code={code})", exit_code=code)
        logger.error("%s; waiting for the next build", crash)
        was_listening = self.state is SupervisorState.LISTENING

        self._cancel_task(self._ready_task)
        self._ready_task = None
        self._exit_task = None
        handle.close_channel()
        self._handle = None
        self._address = None
        self.state = SupervisorState.IDLE
        if was_listening:
            self.events.emit(CLOSING)

    # ── Status ──────────────────────────────────────────────

    def status(self) -> dict[str, Any]:
        """Snapshot of the supervisor for status endpoints and the CLI."""
        return {
            "state": self.state.value,
            "pid": self._handle.pid if self._handle else None,
            "address": self._address.to_dict() if self._address else None,
            "restarts": self.restart_count,
        }
