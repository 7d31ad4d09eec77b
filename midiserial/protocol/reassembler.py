"""Reconstruct MIDI messages from a raw serial byte stream."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from enum import Enum

from ..const import DEFAULT_MAX_SYSEX_BYTES
from .midi import (
    SYSEX_END,
    SYSEX_START,
    RawMessage,
    data_length,
    format_message,
    is_channel_status,
    is_realtime,
    is_status,
    is_undefined_realtime,
)

logger = logging.getLogger("midiserial.reassembler")


class Phase(Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    SYSEX = "sysex"
    DISCARDING = "discarding"


class MessageReassembler:
    """Stateful byte-at-a-time MIDI decoder honouring running status.

    Bytes may be fed in chunks of any size; a message split across several
    chunks completes on whichever chunk carries its last byte. Real-time bytes
    are emitted as soon as they are seen, without disturbing a message in
    progress; the undefined ones (0xF9, 0xFD) are dropped the same way. Status bytes outside the length table never produce a message:
    the stream is discarded until the next valid status byte.

    Instances are not thread safe and should be owned by a single reader.
    """

    def __init__(self, max_sysex_bytes: int = DEFAULT_MAX_SYSEX_BYTES) -> None:
        self._max_sysex_bytes = max(2, max_sysex_bytes)
        self._buffer = bytearray()
        self._expected = 0
        self._phase = Phase.IDLE
        self.running_status: int | None = None
        self.discarded_bytes = 0
        self.completed_messages = 0

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def pending(self) -> bytes:
        """Bytes of the message currently being collected."""
        return bytes(self._buffer)

    def reset(self) -> None:
        """Forget any partial message and the running status."""
        self._buffer.clear()
        self._expected = 0
        self._phase = Phase.IDLE
        self.running_status = None

    def feed(self, data: Iterable[int]) -> list[RawMessage]:
        return list(self.iter_feed(data))

    def iter_feed(self, data: Iterable[int]) -> Iterator[RawMessage]:
        for byte in data:
            message = self.feed_byte(byte)
            if message is not None:
                yield message

    def feed_byte(self, byte: int) -> RawMessage | None:
        if is_undefined_realtime(byte):
            logger.debug("Discarding undefined real-time byte 0x%02X", byte)
            self.discarded_bytes += 1
            return None
        if is_realtime(byte):
            self.completed_messages += 1
            return RawMessage(bytes((byte,)))
        if is_status(byte):
            return self._on_status(byte)
        return self._on_data(byte)

    def _on_status(self, status: int) -> RawMessage | None:
        if status == SYSEX_END and self._phase is Phase.SYSEX:
            self._buffer.append(status)
            return self._complete()

        self._abandon()

        if is_channel_status(status):
            self.running_status = status
            return self._begin(status, data_length(status) or 0)

        # System common messages cancel running status.
        self.running_status = None
        if status == SYSEX_START:
            self._buffer.append(status)
            self._phase = Phase.SYSEX
            return None

        length = data_length(status)
        if length is None:
            logger.debug("Discarding unsupported status byte 0x%02X", status)
            self.discarded_bytes += 1
            self._phase = Phase.DISCARDING
            return None
        return self._begin(status, length)

    def _on_data(self, byte: int) -> RawMessage | None:
        if self._phase is Phase.COLLECTING:
            self._buffer.append(byte)
            if len(self._buffer) - 1 >= self._expected:
                return self._complete()
            return None

        if self._phase is Phase.SYSEX:
            if len(self._buffer) + 1 >= self._max_sysex_bytes:
                logger.warning(
                    "System exclusive message exceeds %d bytes; discarding",
                    self._max_sysex_bytes,
                )
                self.discarded_bytes += len(self._buffer) + 1
                self._buffer.clear()
                self._phase = Phase.DISCARDING
                return None
            self._buffer.append(byte)
            return None

        if self._phase is Phase.IDLE and self.running_status is not None:
            self._begin(self.running_status, data_length(self.running_status) or 0)
            return self._on_data(byte)

        self.discarded_bytes += 1
        return None

    def _begin(self, status: int, length: int) -> RawMessage | None:
        self._buffer.append(status)
        self._expected = length
        self._phase = Phase.COLLECTING
        if length == 0:
            return self._complete()
        return None

    def _complete(self) -> RawMessage:
        message = RawMessage(bytes(self._buffer))
        self._buffer.clear()
        self._expected = 0
        self._phase = Phase.IDLE
        self.completed_messages += 1
        return message

    def _abandon(self) -> None:
        if self._buffer:
            logger.debug(
                "Discarding incomplete message:%s",
                format_message(bytes(self._buffer)),
            )
            self.discarded_bytes += len(self._buffer)
            self._buffer.clear()
        self._expected = 0
        self._phase = Phase.IDLE


__all__ = ["MessageReassembler", "Phase"]
