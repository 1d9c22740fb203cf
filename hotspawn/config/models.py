# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of Hotspawn, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Central configuration module for Hotspawn.

Defines Pydantic models for ``hotspawn.json`` and provides
load / save helpers with a module-level singleton cache.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from hotspawn.exceptions import ConfigValidationError

logger = logging.getLogger("hotspawn.config")

CONFIG_FILENAME = "hotspawn.json"
CONFIG_ENV_VAR = "HOTSPAWN_CONFIG"

# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class WorkerConfig(BaseModel):
    """How the worker process is spawned and when it counts as ready."""

    python: str = sys.executable
    cwd: str | None = None  # None = build source_dir
    env: dict[str, str] = {}
    inherit_env: bool = True
    # False: first listen() in the worker signals readiness.
    # True: wait for an explicit notify_ready() from the application.
    wait_for_ready: bool = False
    kill_timeout: float = 5.0  # seconds between SIGTERM and SIGKILL

    @field_validator("kill_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("kill_timeout must be positive")
        return value


class BuildConfig(BaseModel):
    """In-memory build of a Python source tree."""

    source_dir: str = "."
    output_dir: str | None = None  # virtual; None = <source_dir>/.hotspawn
    entry: str = "main.py"
    include: list[str] = ["*.py"]
    debounce_ms: int = 300


class ProxyConfig(BaseModel):
    """Front-end reverse proxy in front of the worker."""

    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8080
    ready_timeout: float = 30.0  # seconds a request may wait for the worker


class HotspawnConfig(BaseModel):
    log_level: str = "INFO"
    log_dir: str | None = None
    worker: WorkerConfig = WorkerConfig()
    build: BuildConfig = BuildConfig()
    proxy: ProxyConfig = ProxyConfig()


# ---------------------------------------------------------------------------
# Singleton cache
# ---------------------------------------------------------------------------

_config: HotspawnConfig | None = None
_config_path: Path | None = None


def invalidate_cache() -> None:
    """Reset the module-level singleton cache."""
    global _config, _config_path
    _config = None
    _config_path = None


def get_config_path() -> Path:
    """Return the config file location.

    ``HOTSPAWN_CONFIG`` wins; otherwise ``hotspawn.json`` in the current
    working directory.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.cwd() / CONFIG_FILENAME


# ---------------------------------------------------------------------------
# Load / Save
# ---------------------------------------------------------------------------


def load_config(path: Path | None = None) -> HotspawnConfig:
    """Load configuration from disk, returning the cached instance when possible.

    When the file does not exist the default configuration is returned.

    Raises:
        ConfigValidationError: The file is not valid JSON or fails validation.
    """
    global _config, _config_path

    if path is None:
        path = get_config_path()

    if _config is not None and _config_path == path:
        return _config

    if path.is_file():
        logger.debug("Loading config from %s", path)
        try:
            data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
            config = HotspawnConfig.model_validate(data)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse %s: %s", path, exc)
            raise ConfigValidationError(f"Invalid JSON in {path}: {exc}") from exc
        except ValidationError as exc:
            logger.error("Invalid config in %s: %s", path, exc)
            raise ConfigValidationError(f"Invalid config in {path}: {exc}") from exc
    else:
        logger.info("Config file not found at %s; using defaults", path)
        config = HotspawnConfig()

    _config = config
    _config_path = path
    return config


def save_config(config: HotspawnConfig, path: Path | None = None) -> None:
    """Persist *config* to disk as pretty-printed JSON and refresh the cache."""
    global _config, _config_path

    if path is None:
        path = get_config_path()

    path.parent.mkdir(parents=True, exist_ok=True)
    payload = config.model_dump(mode="json")
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    logger.debug("Config saved to %s", path)

    _config = config
    _config_path = path
