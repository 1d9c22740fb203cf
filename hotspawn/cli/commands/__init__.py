# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

"""Shared helpers for CLI commands."""

from __future__ import annotations

import argparse
from pathlib import Path

from hotspawn.config import HotspawnConfig, load_config


def _pick(**values: object) -> dict[str, object]:
    return {key: value for key, value in values.items() if value is not None}


def resolve_config(args: argparse.Namespace) -> HotspawnConfig:
    """Config file values overridden by command-line flags."""
    config = load_config(Path(args.config) if args.config else None)

    build = config.build.model_copy(update=_pick(
        source_dir=getattr(args, "source_dir", None),
        entry=getattr(args, "entry", None),
        include=getattr(args, "include", None),
    ))

    worker = config.worker.model_copy(update=_pick(
        wait_for_ready=getattr(args, "wait_for_ready", None),
    ))
    if worker.cwd is None:
        worker = worker.model_copy(update={"cwd": str(Path(build.source_dir).resolve())})

    proxy = config.proxy.model_copy(update=_pick(
        host=getattr(args, "proxy_host", None),
        port=getattr(args, "proxy_port", None),
    ))
    if getattr(args, "no_proxy", False):
        proxy = proxy.model_copy(update={"enabled": False})

    return config.model_copy(update={"build": build, "worker": worker, "proxy": proxy})
