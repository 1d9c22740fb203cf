# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from hotspawn.cli import cli_main

if __name__ == "__main__":
    cli_main()
