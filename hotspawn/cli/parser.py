# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path


def _add_build_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "source_dir", nargs="?", default=None,
        help="Source tree to build (default: build.source_dir from config, else .)",
    )
    p.add_argument("--entry", default=None, help="Entry file relative to the source tree")
    p.add_argument(
        "--include", action="append", default=None, metavar="GLOB",
        help="File pattern to include in the build (repeatable, default: *.py)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hotspawn",
        description="Hotspawn - rerun in-memory builds in a supervised worker",
    )
    parser.add_argument(
        "--config", default=None, metavar="PATH",
        help="Config file (default: ./hotspawn.json or HOTSPAWN_CONFIG)",
    )
    parser.add_argument(
        "--log-level", default=None,
        help="Log level (default: HOTSPAWN_LOG_LEVEL or config log_level)",
    )
    sub = parser.add_subparsers(dest="command")

    # ── Run ──────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Watch, build and supervise the worker")
    _add_build_arguments(p_run)
    p_run.add_argument(
        "--wait-for-ready", action="store_true", default=None,
        help="Wait for hotspawn.worker.notify_ready() instead of the first listen()",
    )
    p_run.add_argument("--no-proxy", action="store_true", help="Do not start the proxy")
    p_run.add_argument("--proxy-host", default=None, help="Proxy bind host")
    p_run.add_argument("--proxy-port", type=int, default=None, help="Proxy bind port")
    p_run.set_defaults(func=_lazy_run)

    # ── Build ────────────────────────────────────────────
    p_build = sub.add_parser("build", help="Build once and report errors")
    _add_build_arguments(p_build)
    p_build.set_defaults(func=_lazy_build)

    return parser


def _lazy_run(args: argparse.Namespace) -> int:
    from hotspawn.cli.commands.run import cmd_run

    return cmd_run(args)


def _lazy_build(args: argparse.Namespace) -> int:
    from hotspawn.cli.commands.build import cmd_build

    return cmd_build(args)


def cli_main(argv: list[str] | None = None) -> None:
    from dotenv import load_dotenv

    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        sys.exit(2)

    from hotspawn.cli.commands import resolve_config
    from hotspawn.logging_config import setup_logging

    config = resolve_config(args)
    setup_logging(
        level=args.log_level or os.environ.get("HOTSPAWN_LOG_LEVEL") or config.log_level,
        log_dir=Path(config.log_dir) if config.log_dir else None,
    )
    args.resolved_config = config
    sys.exit(args.func(args))
