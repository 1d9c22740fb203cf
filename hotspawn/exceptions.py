from __future__ import annotations
# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of Hotspawn, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Unified exception hierarchy for Hotspawn.

All domain-specific exceptions derive from :class:`HotspawnError`,
enabling callers to catch the entire family with a single clause::

    try:
        ...
    except HotspawnError as e:
        logger.error("Domain error: %s", e)
"""


class HotspawnError(Exception):
    """Base exception for all Hotspawn errors."""


# ── Build ────────────────────────────────────────────────────


class BuildError(HotspawnError):
    """Build reported errors; the running worker is left untouched."""

    def __init__(self, message: str = "Build failed", *, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


# ── Process / IPC ────────────────────────────────────────────


class ProcessError(HotspawnError):
    """Worker process and IPC errors."""


class SpawnFailure(ProcessError):
    """The worker process could not be created."""


class WorkerCrash(ProcessError):
    """Worker exited on its own before it was closed."""

    def __init__(self, message: str = "Worker crashed", *, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class ChannelError(ProcessError):
    """Malformed message on the supervisor/worker channel."""


# ── Configuration ────────────────────────────────────────────


class ConfigError(HotspawnError):
    """Configuration errors."""


class ConfigValidationError(ConfigError):
    """Configuration validation failure."""
