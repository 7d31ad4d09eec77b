"""Data model for MidiSerial configuration."""

from __future__ import annotations

from dataclasses import dataclass

from ..const import (
    DEFAULT_DEBUG_LOGGING,
    DEFAULT_LOG_SYSLOG,
    DEFAULT_MAX_READ_FAILURES,
    DEFAULT_MAX_SYSEX_BYTES,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PORT_NAME,
    DEFAULT_SERIAL_BAUD,
    DEFAULT_SERIAL_PORT,
)


@dataclass(slots=True)
class RuntimeConfig:
    """Strongly typed configuration for the bridge process."""

    serial_port: str = DEFAULT_SERIAL_PORT
    serial_baud: int = DEFAULT_SERIAL_BAUD
    input_index: int | None = None
    output_index: int | None = None
    create_name: str | None = None
    verbose: bool = False
    debug_logging: bool = DEFAULT_DEBUG_LOGGING
    log_syslog: bool = DEFAULT_LOG_SYSLOG
    midi_backend: str | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_sysex_bytes: int = DEFAULT_MAX_SYSEX_BYTES
    max_read_failures: int = DEFAULT_MAX_READ_FAILURES

    @property
    def virtual_port_name(self) -> str | None:
        """Name of the virtual ports to create, if any.

        With no port selected at all, a pair named after the program is
        created.
        """
        if self.create_name is not None:
            return self.create_name
        if self.input_index is None and self.output_index is None:
            return DEFAULT_PORT_NAME
        return None
