"""Unit tests for RestartCoordinator and RestartToken."""
# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from hotspawn.supervisor import RestartCoordinator


class TestRestartCoordinator:
    def test_fire_runs_pending_callback_once(self):
        coordinator = RestartCoordinator()
        calls = []
        coordinator.request_restart(lambda: calls.append("a"))

        coordinator.fire()
        coordinator.fire()

        assert calls == ["a"]
        assert not coordinator.has_pending

    def test_fire_without_request_is_noop(self):
        RestartCoordinator().fire()

    def test_new_request_revokes_previous(self):
        coordinator = RestartCoordinator()
        calls = []
        first = coordinator.request_restart(lambda: calls.append("first"))
        second = coordinator.request_restart(lambda: calls.append("second"))

        assert not coordinator.is_active(first)
        assert coordinator.is_active(second)

        coordinator.fire()
        assert calls == ["second"]

    def test_token_stays_active_after_fire(self):
        coordinator = RestartCoordinator()
        token = coordinator.request_restart(lambda: None)
        coordinator.fire()

        assert coordinator.is_active(token)
        assert coordinator.active_token is token

    def test_request_after_fire_revokes_fired_token(self):
        coordinator = RestartCoordinator()
        first = coordinator.request_restart(lambda: None)
        coordinator.fire()
        coordinator.request_restart(lambda: None)

        assert not coordinator.is_active(first)
        assert coordinator.has_pending

    def test_tokens_are_distinct(self):
        coordinator = RestartCoordinator()
        a = coordinator.request_restart(lambda: None)
        b = coordinator.request_restart(lambda: None)
        assert a is not b
        assert a != b
        assert b.id > a.id

    def test_cancel_drops_pending_callback(self):
        coordinator = RestartCoordinator()
        calls = []
        token = coordinator.request_restart(lambda: calls.append("a"))

        coordinator.cancel()
        coordinator.fire()

        assert calls == []
        assert not coordinator.has_pending
        assert not coordinator.is_active(token)
        assert coordinator.active_token is None

    def test_cancel_retires_fired_token(self):
        coordinator = RestartCoordinator()
        token = coordinator.request_restart(lambda: None)
        coordinator.fire()
        coordinator.cancel()
        assert not coordinator.is_active(token)

    def test_cancel_without_request_is_noop(self):
        RestartCoordinator().cancel()
