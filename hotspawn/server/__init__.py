# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0
"""
Proxy front end: routing contract and the FastAPI reverse proxy.
"""

from __future__ import annotations

from hotspawn.server.routing import AddressTracker, ReadinessGateMiddleware, RoutingConfig, routing_config

__all__ = ["AddressTracker", "ReadinessGateMiddleware", "RoutingConfig", "routing_config"]
