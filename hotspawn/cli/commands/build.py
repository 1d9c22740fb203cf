# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

"""``hotspawn build``: one build, no worker."""

from __future__ import annotations

import argparse

from hotspawn.build import PythonBuild
from hotspawn.config import HotspawnConfig


def cmd_build(args: argparse.Namespace) -> int:
    config: HotspawnConfig = args.resolved_config
    result = PythonBuild.from_config(config.build).run(watching=False)

    if result.has_errors:
        print(f"Build failed with {len(result.errors)} error(s):")
        for error in result.errors:
            print(f"  {error}")
        return 1

    print(f"Build OK: {len(result.assets)} file(s) in {result.duration:.2f}s")
    return 0
