"""
Restart coordination: only the latest restart request completes.
"""

# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_token_ids = itertools.count(1)


@dataclass(frozen=True, eq=False)
class RestartToken:
    """Marker for one restart request."""

    id: int


class RestartCoordinator:
    """
    Single-slot holder for the pending restart callback.

    A new request revokes the previous one, whether or not it has
    fired yet; a revoked callback is never invoked.
    """

    def __init__(self) -> None:
        self._active: RestartToken | None = None
        self._pending: Callable[[], None] | None = None

    @property
    def active_token(self) -> RestartToken | None:
        return self._active

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def request_restart(self, callback: Callable[[], None]) -> RestartToken:
        """Install *callback* as the sole pending restart handler."""
        token = RestartToken(next(_token_ids))
        if self._pending is not None:
            logger.debug("Restart %d supersedes restart %d", token.id, self._active.id)
        self._active = token
        self._pending = callback
        return token

    def is_active(self, token: RestartToken) -> bool:
        """True while *token* is the most recently issued one."""
        return token is self._active

    def fire(self) -> None:
        """Run the pending callback, if any. Later calls are no-ops."""
        callback, self._pending = self._pending, None
        if callback is not None:
            callback()

    def cancel(self) -> None:
        """Drop the pending callback and retire the active token."""
        if self._active is not None:
            logger.debug("Restart %d cancelled", self._active.id)
        self._active = None
        self._pending = None
