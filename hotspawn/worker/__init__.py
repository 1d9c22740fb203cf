# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0
"""
Worker-side API.

Applications running under hotspawn with ``wait_for_ready`` enabled call
:func:`notify_ready` once they accept connections.
"""

from __future__ import annotations

import logging

from hotspawn.supervisor.channel import EVENT_READY, ListeningAddress, WorkerChannel, WorkerEvent

logger = logging.getLogger(__name__)


def notify_ready(host: str, port: int) -> bool:
    """Tell the supervisor this worker serves on *host*:*port*.

    Returns False (and does nothing) outside a hotspawn worker.
    """
    from hotspawn.worker.runner import get_channel

    channel = get_channel() or WorkerChannel.from_env()
    if channel is None:
        logger.debug("Not running under hotspawn; ready signal dropped")
        return False
    channel.send(WorkerEvent(EVENT_READY, ListeningAddress(host=host, port=port)))
    return True


__all__ = ["notify_ready"]
