"""Shared constants for MidiSerial components."""

from __future__ import annotations

from typing import Final

DEFAULT_SERIAL_PORT: Final[str] = "/dev/ttyS1"
DEFAULT_SERIAL_BAUD: Final[int] = 38400
DEFAULT_PORT_NAME: Final[str] = "MidiSerial"

READ_CHUNK_SIZE: Final[int] = 255
DEFAULT_POLL_INTERVAL: Final[float] = 0.5
DEFAULT_MAX_SYSEX_BYTES: Final[int] = 4096
DEFAULT_MAX_READ_FAILURES: Final[int] = 10
DEFAULT_DEBUG_LOGGING: Final[bool] = False
DEFAULT_LOG_SYSLOG: Final[bool] = False

EXIT_OK: Final[int] = 0
EXIT_FAILURE: Final[int] = 1
EXIT_USAGE: Final[int] = 2

__all__ = [
    "DEFAULT_SERIAL_PORT",
    "DEFAULT_SERIAL_BAUD",
    "DEFAULT_PORT_NAME",
    "READ_CHUNK_SIZE",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_MAX_SYSEX_BYTES",
    "DEFAULT_MAX_READ_FAILURES",
    "DEFAULT_DEBUG_LOGGING",
    "DEFAULT_LOG_SYSLOG",
    "EXIT_OK",
    "EXIT_FAILURE",
    "EXIT_USAGE",
]
