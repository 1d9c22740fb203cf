"""Unit tests for the reverse proxy application."""
# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import asyncio

import httpx
import pytest
import pytest_asyncio

from hotspawn.config import ProxyConfig
from hotspawn.server.app import create_proxy_app
from hotspawn.supervisor import CLOSING, LISTENING, ListeningAddress, WorkerSupervisor


class _Upstream:
    """httpx transport standing in for the worker's HTTP server."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.fail = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(
            201,
            content=b"from worker",
            headers={"X-Worker": "yes", "Content-Type": "text/plain"},
        )


@pytest.fixture
def upstream() -> _Upstream:
    return _Upstream()


@pytest.fixture
def supervisor(spawner) -> WorkerSupervisor:
    return WorkerSupervisor(spawner=spawner)


@pytest.fixture
def app(supervisor, upstream):
    return create_proxy_app(
        supervisor,
        ProxyConfig(ready_timeout=0.2),
        transport=httpx.MockTransport(upstream),
    )


@pytest_asyncio.fixture
async def client(app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://proxy") as c:
        yield c


class TestProxy:
    @pytest.mark.asyncio
    async def test_forwards_to_listening_worker(self, supervisor, upstream, client):
        supervisor.events.emit(LISTENING, ListeningAddress("127.0.0.1", 9100))

        response = await client.post("/items?page=2", content=b"payload", headers={"X-Custom": "1"})

        assert response.status_code == 201
        assert response.text == "from worker"
        assert response.headers["X-Worker"] == "yes"
        assert "X-Request-ID" in response.headers

        forwarded = upstream.requests[0]
        assert str(forwarded.url) == "http://127.0.0.1:9100/items?page=2"
        assert forwarded.method == "POST"
        assert forwarded.content == b"payload"
        assert forwarded.headers["X-Custom"] == "1"
        assert forwarded.headers["host"] == "127.0.0.1:9100"

    @pytest.mark.asyncio
    async def test_request_waits_for_worker(self, supervisor, upstream, client):
        pending = asyncio.ensure_future(client.get("/deferred"))
        await asyncio.sleep(0.05)
        assert not pending.done()
        assert upstream.requests == []

        supervisor.events.emit(LISTENING, ListeningAddress("127.0.0.1", 9101))
        response = await pending

        assert response.status_code == 201
        assert str(upstream.requests[0].url) == "http://127.0.0.1:9101/deferred"

    @pytest.mark.asyncio
    async def test_503_when_worker_never_listens(self, upstream, client):
        response = await client.get("/slow")

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_requests_follow_restart(self, supervisor, upstream, client):
        supervisor.events.emit(LISTENING, ListeningAddress("127.0.0.1", 9100))
        await client.get("/a")

        supervisor.events.emit(CLOSING)
        pending = asyncio.ensure_future(client.get("/b"))
        await asyncio.sleep(0.05)
        supervisor.events.emit(LISTENING, ListeningAddress("127.0.0.1", 9200))
        await pending

        assert [str(r.url) for r in upstream.requests] == [
            "http://127.0.0.1:9100/a",
            "http://127.0.0.1:9200/b",
        ]

    @pytest.mark.asyncio
    async def test_upstream_failure_is_502(self, supervisor, upstream, client):
        supervisor.events.emit(LISTENING, ListeningAddress("127.0.0.1", 9100))
        upstream.fail = True

        response = await client.get("/boom")
        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_status_is_not_gated(self, client):
        response = await client.get("/_hotspawn/status")

        assert response.status_code == 200
        assert response.json() == {"state": "idle", "pid": None, "address": None, "restarts": 0}

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, supervisor, client):
        supervisor.events.emit(LISTENING, ListeningAddress("127.0.0.1", 9100))
        response = await client.get("/x", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
