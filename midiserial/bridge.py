"""Bidirectional pump between a serial line and MIDI endpoints.

Architecture:
    serial fd --read_chunk--> MessageReassembler --RawMessage--> EventOutput.send_now
    EventInput --callback--> Bridge.on_incoming_event --encode--> serial fd

The read loop runs on the caller's thread. The MIDI backend calls
:meth:`Bridge.on_incoming_event` from its own thread; that path only encodes
and writes, so it shares no decoder state with the loop. Reads and writes on
the descriptor are not locked against each other; writes and the final close
are.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol

import msgspec

from .const import (
    DEFAULT_MAX_READ_FAILURES,
    DEFAULT_MAX_SYSEX_BYTES,
    DEFAULT_POLL_INTERVAL,
)
from .endpoints import EventInput, EventOutput
from .protocol.midi import RawMessage, as_raw_message, encode, format_message
from .protocol.reassembler import MessageReassembler
from .transport.termios_serial import SerialChannel, SerialException

logger = logging.getLogger("midiserial.bridge")

VERBOSE_LEVEL = logging.INFO


class ByteChannel(Protocol):
    """Serial surface the bridge drives."""

    def read_chunk(self, timeout: float | None = None) -> bytes: ...

    def write(self, data: bytes) -> int: ...

    def close(self) -> None: ...


ChannelFactory = Callable[[str, int], ByteChannel]


class BridgeStats(msgspec.Struct):
    """Traffic counters for one bridge run."""

    bytes_read: int = 0
    messages_received: int = 0
    messages_delivered: int = 0
    delivery_errors: int = 0
    messages_transmitted: int = 0
    bytes_written: int = 0
    write_errors: int = 0
    dropped_not_ready: int = 0
    read_errors: int = 0
    discarded_bytes: int = 0

    def as_dict(self) -> dict[str, Any]:
        return msgspec.structs.asdict(self)


class Bridge:
    """Moves MIDI messages between a serial device and MIDI endpoints.

    Either endpoint may be ``None``; the matching direction is then a no-op.

    Attributes:
        serial_port: Path of the character device.
        serial_baud: Requested line speed.
        event_input: MIDI input whose messages are written to the serial line.
        event_output: MIDI output receiving messages read from the serial line.
        verbose: Log every message in both directions at INFO level.
    """

    def __init__(
        self,
        serial_port: str,
        serial_baud: int,
        event_input: EventInput | None = None,
        event_output: EventOutput | None = None,
        verbose: bool = False,
        *,
        channel_factory: ChannelFactory = SerialChannel.open,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_sysex_bytes: int = DEFAULT_MAX_SYSEX_BYTES,
        max_read_failures: int = DEFAULT_MAX_READ_FAILURES,
    ) -> None:
        self.serial_port = serial_port
        self.serial_baud = serial_baud
        self.event_input = event_input
        self.event_output = event_output
        self.verbose = verbose
        self._channel_factory = channel_factory
        self._poll_interval = poll_interval
        self._max_read_failures = max(1, max_read_failures)
        self._reassembler = MessageReassembler(max_sysex_bytes)
        self._channel: ByteChannel | None = None
        self._stop_event = threading.Event()
        self._stats = BridgeStats()
        self._stats_lock = threading.Lock()
        self._write_lock = threading.Lock()

    @property
    def stats(self) -> BridgeStats:
        with self._stats_lock:
            self._stats.discarded_bytes = self._reassembler.discarded_bytes
            return msgspec.structs.replace(self._stats)

    @property
    def running(self) -> bool:
        return self._channel is not None

    def stop(self) -> None:
        """Ask the read loop to exit at its next iteration."""
        self._stop_event.set()

    def _trace(self, direction: str, data: bytes) -> None:
        level = VERBOSE_LEVEL if self.verbose else logging.DEBUG
        if logger.isEnabledFor(level):
            logger.log(
                level,
                "%s%s",
                direction,
                format_message(data),
                extra={"direction": direction, "midi": bytes(data)},
            )

    def _count(self, **increments: int) -> None:
        with self._stats_lock:
            for name, amount in increments.items():
                setattr(self._stats, name, getattr(self._stats, name) + amount)

    def on_incoming_event(self, message: object) -> bool:
        """Write one MIDI message to the serial line.

        Called by the MIDI backend, possibly from another thread. Failures are
        logged and counted but never raised; the message is dropped.

        Returns:
            True when every byte was written.
        """
        raw = as_raw_message(message)
        data = encode(raw)
        # Held across the write so _shutdown cannot close the descriptor mid-write.
        with self._write_lock:
            channel = self._channel
            if channel is None:
                logger.warning("Serial port not open; dropping message%s", format_message(data))
                self._count(dropped_not_ready=1)
                return False

            try:
                channel.write(data)
            except SerialException as exc:
                logger.error("write failed: %s", exc)
                self._count(write_errors=1)
                return False

        self._count(messages_transmitted=1, bytes_written=len(data))
        self._trace("tx", data)
        return True

    def _deliver(self, message: RawMessage) -> None:
        self._count(messages_received=1)
        self._trace("rx", message.data)
        if self.event_output is None:
            return
        try:
            self.event_output.send_now(message)
        except (OSError, ValueError) as exc:
            logger.error("MIDI delivery failed for%s: %s", format_message(message.data), exc)
            self._count(delivery_errors=1)
            return
        self._count(messages_delivered=1)

    def pump(self, chunk: bytes) -> list[RawMessage]:
        """Reassemble *chunk* and deliver every completed message."""
        self._count(bytes_read=len(chunk))
        messages = self._reassembler.feed(chunk)
        for message in messages:
            self._deliver(message)
        return messages

    def run(self, stop_event: threading.Event | None = None) -> None:
        """Open the serial line and pump messages until stopped.

        Raises:
            SerialOpenError: the serial device could not be opened; no MIDI
                input has been started.
            SerialException: reads failed ``max_read_failures`` times in a row.
        """
        if stop_event is not None:
            self._stop_event = stop_event

        channel = self._channel_factory(self.serial_port, self.serial_baud)
        self._channel = channel
        logger.info("tty %s at %d baud", self.serial_port, self.serial_baud)

        try:
            if self.event_input is not None:
                self.event_input.start(self.on_incoming_event)
            self._read_loop(channel)
        finally:
            self._shutdown(channel)

    def _read_loop(self, channel: ByteChannel) -> None:
        failures = 0
        while not self._stop_event.is_set():
            try:
                chunk = channel.read_chunk(self._poll_interval)
            except SerialException as exc:
                failures += 1
                self._count(read_errors=1)
                if failures >= self._max_read_failures:
                    logger.critical("Giving up after %d consecutive read errors: %s", failures, exc)
                    raise
                logger.error("read failed (%d/%d): %s", failures, self._max_read_failures, exc)
                continue

            failures = 0
            if chunk:
                self.pump(chunk)

    def _shutdown(self, channel: ByteChannel) -> None:
        if self.event_input is not None:
            try:
                self.event_input.stop()
            except OSError as exc:
                logger.warning("Error stopping MIDI input: %s", exc)

        with self._write_lock:
            self._channel = None
            channel.close()

        for endpoint in (self.event_input, self.event_output):
            if endpoint is None:
                continue
            try:
                endpoint.close()
            except OSError as exc:
                logger.warning("Error closing MIDI endpoint: %s", exc)

        logger.info("Bridge stopped: %s", self.stats.as_dict())


__all__ = ["Bridge", "BridgeStats", "ByteChannel", "ChannelFactory"]
