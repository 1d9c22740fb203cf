"""Unit tests for LifecycleEvents."""
# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import asyncio
import logging

import pytest

from hotspawn.supervisor import CLOSING, LISTENING, LifecycleEvents, ListeningAddress


class TestLifecycleEvents:
    def test_listeners_run_in_order(self):
        events = LifecycleEvents()
        calls = []
        events.on(CLOSING, lambda: calls.append(1))
        events.on(CLOSING, lambda: calls.append(2))

        events.emit(CLOSING)
        assert calls == [1, 2]

    def test_payload_is_passed(self):
        events = LifecycleEvents()
        seen = []
        events.on(LISTENING, seen.append)
        address = ListeningAddress("127.0.0.1", 3000)

        events.emit(LISTENING, address)
        assert seen == [address]

    def test_unsubscribe(self):
        events = LifecycleEvents()
        calls = []
        unsubscribe = events.on(CLOSING, lambda: calls.append(1))
        unsubscribe()
        unsubscribe()

        events.emit(CLOSING)
        assert calls == []

    def test_once(self):
        events = LifecycleEvents()
        calls = []
        events.once(CLOSING, lambda: calls.append(1))

        events.emit(CLOSING)
        events.emit(CLOSING)
        assert calls == [1]

    def test_failing_listener_does_not_stop_others(self, caplog):
        events = LifecycleEvents()
        calls = []

        def broken():
            raise RuntimeError("boom")

        events.on(CLOSING, broken)
        events.on(CLOSING, lambda: calls.append(1))

        with caplog.at_level(logging.ERROR):
            events.emit(CLOSING)

        assert calls == [1]
        assert "closing" in caplog.text

    def test_unknown_event(self):
        events = LifecycleEvents()
        with pytest.raises(ValueError):
            events.on("restarted", lambda: None)
        with pytest.raises(ValueError):
            events.emit("restarted")

    @pytest.mark.asyncio
    async def test_wait_for_returns_payload(self):
        events = LifecycleEvents()
        address = ListeningAddress("127.0.0.1", 3000)

        waiter = asyncio.ensure_future(events.wait_for(LISTENING))
        await asyncio.sleep(0)
        events.emit(LISTENING, address)

        assert await waiter == address

    @pytest.mark.asyncio
    async def test_wait_for_cancelled_unsubscribes(self):
        events = LifecycleEvents()
        waiter = asyncio.ensure_future(events.wait_for(CLOSING))
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert events._listeners[CLOSING] == []
