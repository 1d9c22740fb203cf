"""
Handle for the worker child process.
"""

# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
from collections.abc import AsyncIterator
from pathlib import Path

import hotspawn
from hotspawn.config import WorkerConfig
from hotspawn.exceptions import ChannelError, SpawnFailure
from hotspawn.supervisor.channel import (
    CHANNEL_BUFFER_LIMIT,
    CHANNEL_FD_ENV,
    LoadMessage,
    WorkerEvent,
)

logger = logging.getLogger(__name__)

WORKER_MODULE = "hotspawn.worker"

# Directory containing the hotspawn package, so the child can import it
# even when hotspawn is not installed into the worker's interpreter.
_PACKAGE_ROOT = str(Path(hotspawn.__file__).resolve().parent.parent)


def build_worker_env(config: WorkerConfig, channel_fd: int) -> dict[str, str]:
    """Environment for a worker process."""
    env = dict(os.environ) if config.inherit_env else {}
    env.update(config.env)
    env[CHANNEL_FD_ENV] = str(channel_fd)
    python_path = env.get("PYTHONPATH")
    env["PYTHONPATH"] = (
        _PACKAGE_ROOT + os.pathsep + python_path if python_path else _PACKAGE_ROOT
    )
    return env


class WorkerHandle:
    """
    One running worker process plus the read end of its event channel.

    Owned by exactly one WorkerSupervisor.
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        reader: asyncio.StreamReader,
        transport: asyncio.ReadTransport | None = None,
    ):
        self.process = process
        self.reader = reader
        self._transport = transport

    @classmethod
    async def spawn(cls, config: WorkerConfig) -> WorkerHandle:
        """
        Start ``python -m hotspawn.worker``.

        The worker's stdout/stderr are inherited from the supervisor.

        Raises:
            SpawnFailure: If the process could not be created
        """
        read_fd, write_fd = os.pipe()
        cmd = [config.python, "-m", WORKER_MODULE]
        logger.debug("Command: %s (cwd=%s)", " ".join(cmd), config.cwd)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                cwd=config.cwd,
                env=build_worker_env(config, write_fd),
                pass_fds=(write_fd,),
            )
        except OSError as e:
            os.close(read_fd)
            raise SpawnFailure(f"Could not start worker ({config.python}): {e}") from e
        finally:
            # The child holds its own copy; closing ours lets EOF through
            # once the worker exits.
            os.close(write_fd)

        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader(limit=CHANNEL_BUFFER_LIMIT)
        pipe = os.fdopen(read_fd, "rb", buffering=0)
        try:
            transport, _ = await loop.connect_read_pipe(
                lambda: asyncio.StreamReaderProtocol(reader), pipe,
            )
        except OSError as e:
            pipe.close()
            process.kill()
            await process.wait()
            raise SpawnFailure(f"Could not attach worker channel: {e}") from e

        logger.info("Worker process started (PID %s)", process.pid)
        return cls(process, reader, transport)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    def is_alive(self) -> bool:
        """Check if process is alive."""
        return self.process.returncode is None

    async def send_load(self, message: LoadMessage) -> None:
        """Write the load message to the worker's stdin and close it.

        Raises:
            BrokenPipeError / ConnectionResetError: worker already gone
        """
        stdin = self.process.stdin
        if stdin is None:
            raise BrokenPipeError("Worker stdin is not a pipe")
        stdin.write((message.to_json() + "\n").encode("utf-8"))
        await stdin.drain()
        stdin.close()
        logger.debug(
            "Load message sent to PID %s (entry=%s, %d artifacts)",
            self.pid, message.entry, len(message.artifacts),
        )

    async def events(self) -> AsyncIterator[WorkerEvent]:
        """Yield events from the worker until its channel closes."""
        while True:
            try:
                line = await self.reader.readline()
            except ValueError as e:
                # Over-long line; the reader has discarded it.
                logger.warning("Oversized event from worker %s: %s", self.pid, e)
                continue
            if not line:
                return
            text = line.decode("utf-8", errors="replace").strip()
            if not text:
                continue
            try:
                event = WorkerEvent.from_json(text)
            except ChannelError as e:
                logger.warning("Bad event from worker %s: %s", self.pid, e)
                continue
            yield event

    def terminate(self) -> None:
        """Send SIGTERM. Safe to call from signal handlers and atexit."""
        self._signal(signal.SIGTERM)

    def kill(self) -> None:
        """Send SIGKILL."""
        self._signal(signal.SIGKILL if sys.platform != "win32" else signal.SIGTERM)

    def _signal(self, signum: int) -> None:
        if self.process.returncode is not None:
            return
        try:
            os.kill(self.process.pid, signum)
        except ProcessLookupError:
            logger.debug("Worker %s already gone", self.pid)

    async def wait(self) -> int:
        """Wait for the process to exit and return its exit code."""
        return await self.process.wait()

    async def stop(self, timeout: float) -> int:
        """
        Stop the worker: SIGTERM, then SIGKILL after *timeout* seconds.

        Returns:
            The exit code
        """
        self.terminate()
        try:
            async with asyncio.timeout(timeout):
                return await self.wait()
        except TimeoutError:
            logger.error("Worker %s did not respond to SIGTERM, sending SIGKILL", self.pid)
            self.kill()
            return await self.wait()

    def close_channel(self) -> None:
        """Release the read end of the event channel."""
        if self._transport is not None:
            self._transport.close()
            self._transport = None
