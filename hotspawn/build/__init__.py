# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0
"""
Build collaborator: in-memory Python builds and watch mode.
"""

from __future__ import annotations

from hotspawn.build.compiler import BuildResult, PythonBuild, SourceAsset
from hotspawn.build.watcher import BuildWatcher

__all__ = ["BuildResult", "BuildWatcher", "PythonBuild", "SourceAsset"]
