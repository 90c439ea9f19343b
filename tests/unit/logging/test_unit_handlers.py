# tests/unit/logging/test_unit_handlers.py - v2
"""Tests for logging/handlers.py - file rotation handler."""

from __future__ import annotations

import pytest

from careocr.logging.handlers import create_rotating_handler, parse_size


class TestParseSize:
    def test_mb(self):
        assert parse_size("10MB") == 10 * 1024 * 1024

    def test_kb_with_space(self):
        assert parse_size("512 KB") == 512 * 1024

    def test_bytes(self):
        assert parse_size("100B") == 100

    def test_case_insensitive(self):
        assert parse_size("1gb") == 1024 ** 3

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid size"):
            parse_size("10bytes")


class TestCreateRotatingHandler:
    def test_creates_handler(self, tmp_path):
        handler = create_rotating_handler(tmp_path / "careocr.log", rotation="1MB", retention=5)
        try:
            assert handler.maxBytes == 1024 * 1024
            assert handler.backupCount == 5
        finally:
            handler.close()

    def test_creates_parent_dirs(self, tmp_path):
        handler = create_rotating_handler(tmp_path / "a" / "b" / "careocr.log")
        handler.close()
        assert (tmp_path / "a" / "b").is_dir()
