# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0
"""
Child process entry point for the worker.

Usage (started by WorkerHandle.spawn, not by hand)::

    HOTSPAWN_CHANNEL_FD=5 python -m hotspawn.worker < load-message.jsonl

Reads one ``load`` message from stdin, installs the virtual module
loader, hooks ``socket.listen`` to report readiness, then runs the
entry artifact as ``__main__``.
"""

from __future__ import annotations

import logging
import socket
import sys

from hotspawn.exceptions import ChannelError
from hotspawn.supervisor.channel import (
    EVENT_LISTENING,
    ListeningAddress,
    LoadMessage,
    WorkerChannel,
    WorkerEvent,
)
from hotspawn.worker.loader import VirtualModuleLoader

logger = logging.getLogger(__name__)

_INET_FAMILIES = (socket.AF_INET, socket.AF_INET6)

_channel: WorkerChannel | None = None
_loader: VirtualModuleLoader | None = None


def get_channel() -> WorkerChannel | None:
    """Channel to the supervisor, once the worker has started."""
    return _channel


def get_loader() -> VirtualModuleLoader | None:
    """The installed virtual module loader, once the worker has started."""
    return _loader


def install_listen_hook(channel: WorkerChannel) -> None:
    """Report the first INET socket that starts listening."""
    real_listen = socket.socket.listen
    reported = False

    def listen(sock: socket.socket, *args: int) -> None:
        nonlocal reported
        real_listen(sock, *args)
        if reported or sock.family not in _INET_FAMILIES:
            return
        reported = True
        host, port = sock.getsockname()[:2]
        channel.send(WorkerEvent(EVENT_LISTENING, ListeningAddress(host=host, port=port)))

    socket.socket.listen = listen  # type: ignore[method-assign]


def read_load_message() -> LoadMessage:
    line = sys.stdin.readline()
    if not line.strip():
        raise ChannelError("No load message on stdin")
    return LoadMessage.from_json(line)


def main() -> None:
    global _channel, _loader

    try:
        message = read_load_message()
    except ChannelError as e:
        print(f"hotspawn worker: {e}", file=sys.stderr)
        sys.exit(2)

    _channel = WorkerChannel.from_env()
    if _channel is not None:
        install_listen_hook(_channel)
    else:
        logger.warning("No supervisor channel; readiness will not be reported")

    _loader = VirtualModuleLoader(message.artifacts)
    _loader.install()
    _loader.load_entry(message.entry)
