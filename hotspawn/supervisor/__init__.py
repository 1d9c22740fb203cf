# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0
"""
Worker supervision package.

Runs build output in a single child process, restarting it on every
successful build and tracking the address it listens on.
"""

from __future__ import annotations

from hotspawn.supervisor.channel import ListeningAddress, LoadMessage, WorkerChannel, WorkerEvent
from hotspawn.supervisor.coordinator import RestartCoordinator, RestartToken
from hotspawn.supervisor.events import CLOSING, LISTENING, RESTART_COMPLETE, LifecycleEvents
from hotspawn.supervisor.handle import WorkerHandle
from hotspawn.supervisor.lifecycle import HostLifecycle, ProcessLifecycle
from hotspawn.supervisor.manager import SupervisorState, WorkerSupervisor

__all__ = [
    "CLOSING",
    "LISTENING",
    "RESTART_COMPLETE",
    "HostLifecycle",
    "LifecycleEvents",
    "ListeningAddress",
    "LoadMessage",
    "ProcessLifecycle",
    "RestartCoordinator",
    "RestartToken",
    "SupervisorState",
    "WorkerChannel",
    "WorkerEvent",
    "WorkerHandle",
    "WorkerSupervisor",
]
