# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0
"""
Hotspawn: re-run freshly built Python code in a supervised worker process.

Build output never touches the disk; the worker imports it from an
in-memory artifact map.
"""

from __future__ import annotations

__version__ = "0.1.0"
