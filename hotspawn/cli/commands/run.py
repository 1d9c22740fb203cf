# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

"""``hotspawn run``: watch, build, supervise and (optionally) proxy."""

from __future__ import annotations

import argparse
import asyncio
import logging

from hotspawn.config import HotspawnConfig

logger = logging.getLogger(__name__)


async def run_dev_server(config: HotspawnConfig) -> None:
    """Run until interrupted: watcher -> supervisor -> proxy."""
    import uvicorn

    from hotspawn.build import BuildWatcher, PythonBuild
    from hotspawn.server.app import create_proxy_app
    from hotspawn.supervisor import ProcessLifecycle, WorkerSupervisor

    lifecycle = ProcessLifecycle()
    supervisor = WorkerSupervisor(config.worker, lifecycle=lifecycle)
    watcher = BuildWatcher(
        PythonBuild.from_config(config.build),
        supervisor.on_build_complete,
        on_close=supervisor.aclose,
        debounce_ms=config.build.debounce_ms,
    )

    server: uvicorn.Server | None = None
    if config.proxy.enabled:
        # Created before the first build so it sees the first 'listening'.
        app = create_proxy_app(supervisor, config.proxy)
        server = uvicorn.Server(uvicorn.Config(
            app,
            host=config.proxy.host,
            port=config.proxy.port,
            log_level="info",
            lifespan="on",
        ))

    try:
        await watcher.start()
        if server is not None:
            display_host = "localhost" if config.proxy.host == "0.0.0.0" else config.proxy.host
            print(f"Proxy ready at http://{display_host}:{config.proxy.port}/")
            await server.serve()
        else:
            await asyncio.Event().wait()
    finally:
        await watcher.stop()
        lifecycle.uninstall()


def cmd_run(args: argparse.Namespace) -> int:
    config: HotspawnConfig = args.resolved_config
    try:
        asyncio.run(run_dev_server(config))
    except KeyboardInterrupt:
        logger.info("Interrupted; worker stopped")
    return 0
