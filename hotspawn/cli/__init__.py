# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from hotspawn.cli.parser import cli_main

__all__ = ["cli_main"]
