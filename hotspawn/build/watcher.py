from __future__ import annotations
# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

"""Watch mode: rebuild on source changes and hand results to the supervisor.

Changes are debounced so an editor saving several files triggers one
build.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from hotspawn.build.compiler import BuildResult, PythonBuild

logger = logging.getLogger("hotspawn.build.watcher")

# ── Configuration ───────────────────────────────────────────────────

DEFAULT_DEBOUNCE_MS = 300

_CHANGE_EVENTS = frozenset({"created", "modified", "deleted", "moved"})

BuildCallback = Callable[[BuildResult], Any]


# ── BuildWatcher ─────────────────────────────────────────────────────


class SourceChangeHandler(FileSystemEventHandler):
    """Forwards relevant source changes to the watcher."""

    def __init__(self, watcher: BuildWatcher) -> None:
        super().__init__()
        self.watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _CHANGE_EVENTS:
            return
        paths = [event.src_path]
        if getattr(event, "dest_path", ""):
            paths.append(event.dest_path)
        for path in paths:
            path = os.fsdecode(path)
            if self.watcher.build.matches(path):
                logger.debug("Source %s: %s", event.event_type, path)
                self.watcher.notify_change(path)
                return


class BuildWatcher:
    """Runs the build in watch mode.

    The first build runs on :meth:`start`; later builds follow file
    changes. Every result, failed or not, goes to *on_build_complete*.
    *on_close* runs when the watcher stops.
    """

    def __init__(
        self,
        build: PythonBuild,
        on_build_complete: BuildCallback,
        *,
        on_close: Callable[[], Awaitable[None]] | None = None,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
    ) -> None:
        self.build = build
        self.on_build_complete = on_build_complete
        self.on_close = on_close
        self.debounce_ms = debounce_ms
        self.observer: Observer | None = None
        self.build_count = 0

        self._loop: asyncio.AbstractEventLoop | None = None
        self._debounce_task: asyncio.Task | None = None
        self._last_change = 0.0
        self._dirty = False
        self._running = False

    # ── Start/Stop ──────────────────────────────────────────────────

    async def start(self) -> BuildResult:
        """Run the initial build and start watching the source tree."""
        if self._running:
            raise RuntimeError("BuildWatcher already running")

        self._loop = asyncio.get_running_loop()
        self._running = True
        logger.info("Watching %s", self.build.source_dir)

        result = await self.rebuild()

        self.observer = Observer()
        self.observer.schedule(
            SourceChangeHandler(self), str(self.build.source_dir), recursive=True,
        )
        self.observer.start()
        return result

    async def stop(self) -> None:
        """Stop watching, then run the close hook."""
        if not self._running:
            return
        self._running = False
        logger.info("Stopping BuildWatcher")

        if self.observer:
            self.observer.stop()
            await asyncio.get_running_loop().run_in_executor(None, self.observer.join, 5.0)
            self.observer = None

        if self._debounce_task and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

        if self.on_close is not None:
            await self.on_close()

    # ── Change handling ────────────────────────────────────────────

    def notify_change(self, path: str) -> None:
        """Record a change. Safe to call from the observer thread."""
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._queue_change, path)

    def _queue_change(self, path: str) -> None:
        if not self._running:
            return
        self._last_change = self._loop.time()
        self._dirty = True
        if self._debounce_task is None or self._debounce_task.done():
            self._debounce_task = self._loop.create_task(self._debounce_loop())

    async def _debounce_loop(self) -> None:
        delay = self.debounce_ms / 1000.0
        while self._running:
            await asyncio.sleep(delay)
            if self._loop.time() - self._last_change < delay:
                continue
            self._dirty = False
            await self.rebuild()
            if not self._dirty:
                return

    async def rebuild(self) -> BuildResult:
        """Build now and deliver the result."""
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, self.build.run, True)
        self.build_count += 1
        if result.has_errors:
            logger.warning("Build #%d failed with %d error(s)", self.build_count, len(result.errors))
        try:
            self.on_build_complete(result)
        except Exception:
            logger.exception("Build callback failed")
        return result
