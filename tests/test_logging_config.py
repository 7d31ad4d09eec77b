"""Tests for midiserial.config.logging."""

from __future__ import annotations

import json
import logging
import sys
from logging.handlers import SysLogHandler
from unittest.mock import patch

import pytest

from midiserial.config import logging as logging_config
from midiserial.config.logging import StructuredLogFormatter, configure_logging
from midiserial.config.model import RuntimeConfig


def _record(name: str, msg: str, *args: object, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(name, logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredLogFormatter:
    def test_trims_prefix_and_formats_message(self) -> None:
        payload = json.loads(StructuredLogFormatter().format(_record("midiserial.bridge", "rx%s", " 0x90")))

        assert payload["logger"] == "bridge"
        assert payload["level"] == "INFO"
        assert payload["message"] == "rx 0x90"
        assert payload["ts"].endswith("Z")
        assert "extra" not in payload

    def test_foreign_logger_keeps_name(self) -> None:
        payload = json.loads(StructuredLogFormatter().format(_record("mido.ports", "hello")))
        assert payload["logger"] == "mido.ports"

    def test_bytes_extras_render_as_hex(self) -> None:
        record = _record("midiserial.serial", "chunk", chunk=b"\x90\x3c\x7f", count=3, port=None)
        payload = json.loads(StructuredLogFormatter().format(record))

        assert payload["extra"] == {"chunk": "[90 3C 7F]", "count": 3, "port": None}

    def test_exception_is_included(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("midiserial", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        payload = json.loads(StructuredLogFormatter().format(record))
        assert "ValueError: boom" in payload["exception"]


class TestConfigureLogging:
    @pytest.mark.parametrize(
        ("config", "level"),
        [
            (RuntimeConfig(), "WARNING"),
            (RuntimeConfig(verbose=True), "INFO"),
            (RuntimeConfig(verbose=True, debug_logging=True), "DEBUG"),
        ],
    )
    def test_level_follows_flags(self, config: RuntimeConfig, level: str) -> None:
        with patch.object(logging_config, "dictConfig") as dict_config:
            configure_logging(config)

        settings = dict_config.call_args.args[0]
        assert settings["root"]["level"] == level
        assert settings["handlers"]["midiserial"]["level"] == level
        assert settings["handlers"]["midiserial"]["use_syslog"] is config.log_syslog

    def test_installs_structured_stderr_handler(self) -> None:
        configure_logging(RuntimeConfig(verbose=True))

        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        handler = root.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert isinstance(handler.formatter, StructuredLogFormatter)


class TestBuildHandler:
    def test_stderr_by_default(self) -> None:
        handler = logging_config._build_handler()
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stderr

    def test_syslog_without_socket_falls_back_to_stderr(self, tmp_path) -> None:
        with patch.object(logging_config, "SYSLOG_SOCKET", tmp_path / "missing"), patch.object(
            logging_config, "SYSLOG_SOCKET_FALLBACK", tmp_path / "also-missing"
        ):
            handler = logging_config._build_handler(use_syslog=True)
        assert not isinstance(handler, SysLogHandler)

    def test_syslog_with_socket(self, tmp_path) -> None:
        socket_path = tmp_path / "log"
        socket_path.touch()
        with patch.object(logging_config, "SYSLOG_SOCKET", socket_path), patch.object(
            logging_config, "SysLogHandler"
        ) as syslog_handler:
            handler = logging_config._build_handler(use_syslog=True)

        syslog_handler.assert_called_once()
        assert syslog_handler.call_args.kwargs["address"] == str(socket_path)
        assert handler is syslog_handler.return_value
        assert handler.ident == "midiserial "
