"""MIDI wire framing: status bytes, message lengths and raw messages.

A MIDI message on the wire is a status byte (high bit set) followed by a
fixed or terminated run of data bytes (high bit clear). Channel messages
(0x80-0xEF) may omit a repeated status byte ("running status"). System
real-time bytes (0xF8-0xFF) are single-byte messages that may appear anywhere
in the stream, even between the bytes of another message.

The serial side carries these bytes unchanged: there is no envelope, length
prefix or checksum, so encoding a message is exposing its raw bytes.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import IntEnum
from typing import Final

import msgspec

STATUS_MASK: Final[int] = 0x80
CHANNEL_MASK: Final[int] = 0x0F
COMMAND_MASK: Final[int] = 0xF0
DATA_MAX: Final[int] = 0x7F

SYSEX_START: Final[int] = 0xF0
SYSEX_END: Final[int] = 0xF7
REALTIME_MIN: Final[int] = 0xF8
SYSTEM_MIN: Final[int] = 0xF0

# Undefined real-time bytes. They may still show up between the bytes of
# another message and are dropped without touching it.
UNDEFINED_REALTIME: Final[frozenset[int]] = frozenset({0xF9, 0xFD})


class StatusKind(IntEnum):
    NOTE_OFF = 0x80
    NOTE_ON = 0x90
    POLY_AFTERTOUCH = 0xA0
    CONTROL_CHANGE = 0xB0
    PROGRAM_CHANGE = 0xC0
    CHANNEL_AFTERTOUCH = 0xD0
    PITCH_BEND = 0xE0
    SYSEX = 0xF0
    QUARTER_FRAME = 0xF1
    SONG_POSITION = 0xF2
    SONG_SELECT = 0xF3
    TUNE_REQUEST = 0xF6
    SYSEX_END = 0xF7


# Number of data bytes following each channel status nibble.
CHANNEL_DATA_LENGTHS: Final[dict[int, int]] = {
    StatusKind.NOTE_OFF: 2,
    StatusKind.NOTE_ON: 2,
    StatusKind.POLY_AFTERTOUCH: 2,
    StatusKind.CONTROL_CHANGE: 2,
    StatusKind.PROGRAM_CHANGE: 1,
    StatusKind.CHANNEL_AFTERTOUCH: 1,
    StatusKind.PITCH_BEND: 2,
}

# System common messages with a fixed length. 0xF4 and 0xF5 are undefined
# and 0xF7 is only valid as the end of a system exclusive message.
SYSTEM_COMMON_DATA_LENGTHS: Final[dict[int, int]] = {
    StatusKind.QUARTER_FRAME: 1,
    StatusKind.SONG_POSITION: 2,
    StatusKind.SONG_SELECT: 1,
    StatusKind.TUNE_REQUEST: 0,
}


def is_status(byte: int) -> bool:
    return bool(byte & STATUS_MASK)


def is_channel_status(byte: int) -> bool:
    return STATUS_MASK <= byte < SYSTEM_MIN


def is_realtime(byte: int) -> bool:
    return byte >= REALTIME_MIN and byte not in UNDEFINED_REALTIME


def is_undefined_realtime(byte: int) -> bool:
    return byte in UNDEFINED_REALTIME


def data_length(status: int) -> int | None:
    """Return the number of data bytes that follow *status*.

    Returns ``None`` for system exclusive (terminated by 0xF7) and for status
    bytes outside the length table.
    """
    if is_channel_status(status):
        return CHANNEL_DATA_LENGTHS[status & COMMAND_MASK]
    if is_realtime(status):
        return 0
    return SYSTEM_COMMON_DATA_LENGTHS.get(status)


class RawMessage(msgspec.Struct, frozen=True):
    """One fully framed MIDI message as it travels on the wire.

    Attributes:
        data: Status byte followed by every data byte, in transmission order.
    """

    data: bytes

    @property
    def status(self) -> int:
        return self.data[0]

    @property
    def channel(self) -> int | None:
        """Zero-based channel of a channel message, ``None`` otherwise."""
        if not self.data or not is_channel_status(self.status):
            return None
        return self.status & CHANNEL_MASK

    def __len__(self) -> int:
        return len(self.data)

    @classmethod
    def from_iterable(cls, values: Iterable[int]) -> "RawMessage":
        return cls(bytes(values))


def encode(message: RawMessage) -> bytes:
    """Serialize *message* for the serial line (its raw bytes, unchanged)."""
    return message.data


def as_raw_message(candidate: object) -> RawMessage:
    """Coerce what a MIDI backend delivers into a :class:`RawMessage`.

    Accepts a :class:`RawMessage`, an object exposing ``bytes()`` (such as
    ``mido.Message``), or a byte sequence.
    """
    if isinstance(candidate, RawMessage):
        return candidate
    if isinstance(candidate, (bytes, bytearray, memoryview)):
        return RawMessage(bytes(candidate))
    to_bytes = getattr(candidate, "bytes", None)
    if callable(to_bytes):
        return RawMessage(bytes(to_bytes()))
    if isinstance(candidate, Iterable):
        return RawMessage.from_iterable(candidate)  # type: ignore[arg-type]
    raise TypeError(f"Cannot convert {type(candidate).__name__} to a MIDI message")


def format_message(data: bytes) -> str:
    """Render *data* as ``" 0x90 0x3c 0x7f"`` for rx/tx trace lines."""
    return "".join(f" 0x{byte:02x}" for byte in data)


__all__ = [
    "CHANNEL_DATA_LENGTHS",
    "SYSTEM_COMMON_DATA_LENGTHS",
    "SYSEX_START",
    "SYSEX_END",
    "UNDEFINED_REALTIME",
    "StatusKind",
    "RawMessage",
    "as_raw_message",
    "data_length",
    "encode",
    "format_message",
    "is_channel_status",
    "is_realtime",
    "is_undefined_realtime",
    "is_status",
]
