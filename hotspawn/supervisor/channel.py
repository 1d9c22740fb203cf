"""
Supervisor/worker wire protocol (JSON Lines).

Supervisor -> worker: one ``load`` message on the worker's stdin.
Worker -> supervisor: event lines on an inherited pipe whose file
descriptor is announced in ``HOTSPAWN_CHANNEL_FD``.
"""

# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from hotspawn.exceptions import ChannelError

logger = logging.getLogger(__name__)

# ── Constants ──────────────────────────────────────────────────
CHANNEL_FD_ENV = "HOTSPAWN_CHANNEL_FD"
CHANNEL_BUFFER_LIMIT = 1 * 1024 * 1024  # 1MB per event line

LOAD_ACTION = "load"
EVENT_LISTENING = "listening"
EVENT_READY = "ready"

_WILDCARD_HOSTS = {"": "127.0.0.1", "0.0.0.0": "127.0.0.1", "::": "::1"}


# ── Protocol Types ──────────────────────────────────────────────────

@dataclass(frozen=True)
class ListeningAddress:
    """Host and port a worker accepts connections on."""

    host: str
    port: int

    def to_dict(self) -> dict[str, Any]:
        return {"host": self.host, "port": self.port}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ListeningAddress:
        try:
            return cls(host=str(data["host"]), port=int(data["port"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ChannelError(f"Invalid address: {data!r}") from e

    @property
    def url(self) -> str:
        """Base URL to reach the worker; wildcard binds map to loopback."""
        host = _WILDCARD_HOSTS.get(self.host, self.host)
        if ":" in host:
            host = f"[{host}]"
        return f"http://{host}:{self.port}"


@dataclass
class LoadMessage:
    """Startup message telling the worker what to run."""

    entry: str
    artifacts: Mapping[str, str] = field(default_factory=dict)

    def to_json(self) -> str:
        """Serialize to JSON line."""
        return json.dumps({
            "action": LOAD_ACTION,
            "entry": self.entry,
            "artifacts": dict(self.artifacts),
        })

    @classmethod
    def from_json(cls, line: str) -> LoadMessage:
        """Deserialize from JSON line."""
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise ChannelError(f"Invalid load message: {e}") from e
        if not isinstance(data, dict) or data.get("action") != LOAD_ACTION:
            raise ChannelError(f"Unexpected message: {line[:80]!r}")
        if "entry" not in data:
            raise ChannelError("Load message without entry")
        return cls(entry=data["entry"], artifacts=data.get("artifacts", {}))


@dataclass
class WorkerEvent:
    """Event sent from worker to supervisor."""

    event: str
    address: ListeningAddress | None = None

    def to_json(self) -> str:
        """Serialize to JSON line."""
        data: dict[str, Any] = {"event": self.event}
        if self.address is not None:
            data["address"] = self.address.to_dict()
        return json.dumps(data)

    @classmethod
    def from_json(cls, line: str) -> WorkerEvent:
        """Deserialize from JSON line."""
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise ChannelError(f"Invalid event line: {e}") from e
        if not isinstance(data, dict) or "event" not in data:
            raise ChannelError(f"Event line without event: {line[:80]!r}")
        address = data.get("address")
        return cls(
            event=data["event"],
            address=ListeningAddress.from_dict(address) if address is not None else None,
        )


# ── Worker side ──────────────────────────────────────────────────

class WorkerChannel:
    """Write end of the event pipe, used inside the worker process."""

    def __init__(self, fd: int):
        self.fd = fd
        self._lock = threading.Lock()

    @classmethod
    def from_env(cls) -> WorkerChannel | None:
        """Channel announced by the supervisor, or None outside a worker."""
        raw = os.environ.get(CHANNEL_FD_ENV)
        if not raw:
            return None
        try:
            return cls(int(raw))
        except ValueError:
            logger.warning("Ignoring invalid %s=%r", CHANNEL_FD_ENV, raw)
            return None

    def send(self, event: WorkerEvent) -> None:
        data = (event.to_json() + "\n").encode("utf-8")
        with self._lock:
            view = memoryview(data)
            while view:
                written = os.write(self.fd, view)
                view = view[written:]
