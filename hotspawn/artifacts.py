# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0
"""
Artifact map: build output held in memory as path -> source text.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Protocol, runtime_checkable

ArtifactMap = Mapping[str, str]


@runtime_checkable
class Asset(Protocol):
    """One build output file: a virtual absolute path and its source."""

    path: str

    def source(self) -> str | bytes: ...


@runtime_checkable
class BuildStats(Protocol):
    """What a build collaborator reports when a build finishes."""

    watching: bool
    output_path: Path
    entry_filename: str
    assets: Iterable[Asset]

    @property
    def has_errors(self) -> bool: ...


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Canonical key for an artifact path (absolute, normalized)."""
    return os.path.normpath(os.path.abspath(os.fspath(path)))


def build_artifact_map(assets: Iterable[Asset]) -> ArtifactMap:
    """Collect *assets* into a read-only artifact map.

    Bytes sources are decoded as UTF-8. Errors raised by an asset's
    ``source()`` propagate to the caller unchanged.
    """
    artifacts: dict[str, str] = {}
    for asset in assets:
        text = asset.source()
        if isinstance(text, bytes):
            text = text.decode("utf-8")
        artifacts[normalize_path(asset.path)] = text
    return MappingProxyType(artifacts)


def entry_path(stats: BuildStats) -> str:
    """Absolute virtual path of the entry artifact for *stats*."""
    return normalize_path(Path(stats.output_path) / stats.entry_filename)
