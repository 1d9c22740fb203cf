from __future__ import annotations
# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of Hotspawn, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Reverse proxy in front of the supervised worker.

Requests wait at the readiness gate while a restart is in flight, then
go to whatever address the latest worker listens on.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from hotspawn.config import ProxyConfig
from hotspawn.logging_config import set_request_id
from hotspawn.server.routing import STATUS_PATH, routing_config
from hotspawn.supervisor import WorkerSupervisor

logger = logging.getLogger("hotspawn.server")

_PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

# Not forwarded in either direction. Content headers are dropped because
# httpx hands back the decoded body.
_SKIP_HEADERS = frozenset({
    "connection", "keep-alive", "proxy-authenticate", "proxy-authorization",
    "te", "trailers", "transfer-encoding", "upgrade", "host",
    "content-length", "content-encoding",
})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every proxied request with method, path, status, and duration.

    Binds a ``request_id`` into structlog contextvars so that all log
    records emitted during request processing carry the ID.
    """

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        structlog.contextvars.clear_contextvars()
        request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex[:12])
        set_request_id(request_id)
        structlog.contextvars.bind_contextvars(method=request.method, path=request.url.path)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 1)

        response.headers["X-Request-ID"] = request_id
        if request.url.path != STATUS_PATH:
            logging.getLogger("hotspawn.request").info(
                "request %s %s -> %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
            )
        return response


def create_proxy_app(
    supervisor: WorkerSupervisor,
    config: ProxyConfig | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the proxy application for *supervisor*.

    Args:
        supervisor: The worker supervisor whose address is followed.
        config: Proxy settings (only ``ready_timeout`` is used here).
        transport: Optional httpx transport for upstream calls.
    """
    config = config or ProxyConfig()
    routing = routing_config(supervisor, ready_timeout=config.ready_timeout)
    client = httpx.AsyncClient(transport=transport, timeout=None, follow_redirects=False)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            await client.aclose()
            routing.tracker.close()

    app = FastAPI(
        title="hotspawn proxy",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        middleware=[Middleware(RequestLoggingMiddleware), routing.middleware],
    )
    app.state.supervisor = supervisor
    app.state.routing = routing
    app.state.client = client

    @app.get(STATUS_PATH)
    async def status() -> dict:
        return supervisor.status()

    @app.api_route("/{path:path}", methods=_PROXY_METHODS)
    async def forward(request: Request, path: str) -> Response:
        base_url = routing.router(request)
        if base_url is None:
            # Worker went away between the gate and here.
            return JSONResponse({"error": "worker not ready"}, status_code=503)

        url = base_url + request.url.path
        if request.url.query:
            url += "?" + request.url.query
        headers = [
            (key, value) for key, value in request.headers.items()
            if key.lower() not in _SKIP_HEADERS
        ]

        try:
            upstream = await client.request(
                request.method, url, headers=headers, content=await request.body(),
            )
        except httpx.HTTPError as e:
            logger.warning("Upstream request to %s failed: %s", url, e)
            return JSONResponse({"error": "bad gateway"}, status_code=502)

        response = Response(content=upstream.content, status_code=upstream.status_code)
        for key, value in upstream.headers.multi_items():
            if key.lower() not in _SKIP_HEADERS:
                response.headers.append(key, value)
        return response

    return app
