"""Serial transport for the MIDI bridge."""

from .termios_serial import (
    BAUDRATE_MAP,
    SerialChannel,
    SerialException,
    SerialOpenError,
)

__all__ = [
    "BAUDRATE_MAP",
    "SerialChannel",
    "SerialException",
    "SerialOpenError",
]
