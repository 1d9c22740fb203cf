"""Unit tests for structlog-based logging setup."""
# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog

from hotspawn.logging_config import LOG_FILENAME, get_request_id, set_request_id, setup_logging


def _flush() -> None:
    for handler in logging.getLogger().handlers:
        handler.flush()


class TestSetupLogging:
    def test_json_file_output(self, tmp_path: Path, restore_logging):
        setup_logging(level="DEBUG", log_dir=tmp_path)
        structlog.contextvars.clear_contextvars()
        set_request_id("req-1")
        try:
            logging.getLogger("hotspawn.test").info("worker %s listening", 42)
        finally:
            structlog.contextvars.clear_contextvars()
        _flush()

        record = json.loads((tmp_path / "hotspawn.log").read_text().strip().splitlines()[-1])
        assert record["event"] == "worker 42 listening"
        assert record["level"] == "info"
        assert record["logger"] == "hotspawn.test"
        assert record["request_id"] == "req-1"

    def test_console_only(self, restore_logging):
        setup_logging(level="WARNING")
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1

    def test_third_party_noise_is_reduced(self, restore_logging):
        setup_logging(level="DEBUG")
        assert logging.getLogger("watchdog").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_plain_text_file(self, tmp_path: Path, restore_logging):
        setup_logging(level="INFO", log_dir=tmp_path, json_file=False)
        logging.getLogger("hotspawn.test").warning("worker gone")
        _flush()

        line = (tmp_path / LOG_FILENAME).read_text().strip().splitlines()[-1]
        assert "worker gone" in line
        assert not line.startswith("{")

    def test_file_handler_rotates(self, tmp_path: Path, restore_logging):
        setup_logging(log_dir=tmp_path / "logs")
        handlers = logging.getLogger().handlers
        assert len(handlers) == 2
        assert isinstance(handlers[1], RotatingFileHandler)
        assert (tmp_path / "logs").is_dir()

    def test_unknown_level_falls_back_to_info(self, restore_logging):
        setup_logging(level="chatty")
        assert logging.getLogger().level == logging.INFO


class TestRequestId:
    def test_default_and_bound(self):
        structlog.contextvars.clear_contextvars()
        assert get_request_id() == "-"
        set_request_id("abc")
        try:
            assert get_request_id() == "abc"
        finally:
            structlog.contextvars.clear_contextvars()
