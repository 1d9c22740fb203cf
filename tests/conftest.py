# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0
"""Global test fixtures for Hotspawn tests.

Provides config cache isolation, a fake worker spawner, and the
virtual artifact maps used across supervisor and loader tests.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from hotspawn.config import invalidate_cache
from hotspawn.supervisor import WorkerSupervisor
from tests.helpers.fake_worker import FakeLifecycle, FakeSpawner


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Point config loading at a per-test path and reset its cache."""
    monkeypatch.setenv("HOTSPAWN_CONFIG", str(tmp_path / "hotspawn.json"))
    invalidate_cache()
    yield
    invalidate_cache()


@pytest.fixture
def virtual_root(tmp_path: Path) -> str:
    """Directory that artifact paths live under; never created on disk."""
    return os.path.join(str(tmp_path), "virtual-out")


@pytest.fixture
def artifacts(virtual_root: str) -> dict[str, str]:
    return {
        os.path.join(virtual_root, "main.py"): "import helper\nVALUE = helper.GREETING\n",
        os.path.join(virtual_root, "helper.py"): "GREETING = 'hello'\n",
    }


@pytest.fixture
def entry(virtual_root: str) -> str:
    return os.path.join(virtual_root, "main.py")


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def lifecycle() -> FakeLifecycle:
    return FakeLifecycle()


@pytest.fixture
def supervisor(spawner: FakeSpawner, lifecycle: FakeLifecycle) -> WorkerSupervisor:
    return WorkerSupervisor(lifecycle=lifecycle, spawner=spawner)


@pytest.fixture
def restore_logging():
    """Undo root logger changes made by setup_logging()."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
