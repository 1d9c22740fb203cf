# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from hotspawn.config.models import (
    BuildConfig,
    HotspawnConfig,
    ProxyConfig,
    WorkerConfig,
    get_config_path,
    invalidate_cache,
    load_config,
    save_config,
)

__all__ = [
    "BuildConfig",
    "HotspawnConfig",
    "ProxyConfig",
    "WorkerConfig",
    "get_config_path",
    "invalidate_cache",
    "load_config",
    "save_config",
]
