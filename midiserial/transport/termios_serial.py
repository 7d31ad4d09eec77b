"""Raw termios serial line used by the MIDI bridge.

The channel owns a single file descriptor opened on a character device. It
snapshots the line settings on open, switches the line to raw 8-bit mode at the
requested speed and restores the snapshot when closed.

When the speed or the line attributes cannot be applied the failure is logged
as a warning and the channel is still returned with whatever the driver
accepted.

This module is Linux/POSIX only.
"""

from __future__ import annotations

import errno
import fcntl
import logging
import os
import select
import termios
import threading
from typing import Any, Final

from ..const import READ_CHUNK_SIZE

logger = logging.getLogger("midiserial.serial")

# Baudrate constants mapping
BAUDRATE_MAP: Final[dict[int, int]] = {
    50: termios.B50, 75: termios.B75, 110: termios.B110, 134: termios.B134,
    150: termios.B150, 200: termios.B200, 300: termios.B300, 600: termios.B600,
    1200: termios.B1200, 1800: termios.B1800, 2400: termios.B2400, 4800: termios.B4800,
    9600: termios.B9600, 19200: termios.B19200, 38400: termios.B38400, 57600: termios.B57600,
    115200: termios.B115200, 230400: termios.B230400,
}
for _rate in (460800, 500000, 576000, 921600, 1000000, 1152000, 1500000, 2000000):
    _const = getattr(termios, f"B{_rate}", None)
    if _const is not None:
        BAUDRATE_MAP[_rate] = _const

# Benign conditions for a read on an established line.
_EMPTY_READ_ERRNOS: Final[frozenset[int]] = frozenset({errno.EAGAIN, errno.EWOULDBLOCK, errno.EINTR})


class SerialException(OSError):
    """Exception raised on serial port errors."""
    pass


class SerialOpenError(SerialException):
    """The serial device could not be opened."""
    pass


def apply_raw_mode(attrs: list[Any], speed: int | None) -> list[Any]:
    """Return a copy of *attrs* configured for raw 8-bit transfer at *speed*.

    ``speed`` is a termios ``B*`` constant; ``None`` keeps the current one.
    """
    configured = list(attrs)
    configured[6] = list(attrs[6])

    # Input flags: no break, parity, stripping or CR/NL translation
    configured[0] = 0
    # Output flags: no post processing
    configured[1] = 0
    # Control flags: 8N1, receiver on, ignore modem control lines
    configured[2] = termios.CS8 | termios.CREAD | termios.CLOCAL
    # Local flags: no echo, no canonical mode, no signal characters
    configured[3] = 0
    # One byte satisfies a read; no inter-byte timer
    configured[6][termios.VMIN] = 1
    configured[6][termios.VTIME] = 0

    if speed is not None:
        configured[4] = speed
        configured[5] = speed
    return configured


class SerialChannel:
    """Blocking raw serial line on one file descriptor.

    Usage:
        with SerialChannel.open("/dev/ttyS1", 38400) as channel:
            chunk = channel.read_chunk()
            channel.write(b"\\x90\\x3c\\x7f")

    ``read_chunk`` and ``write`` may be called from different threads.
    """

    def __init__(self, port: str, baudrate: int, fd: int, original_attrs: list[Any] | None) -> None:
        self._port = port
        self._baudrate = baudrate
        self._fd: int | None = fd
        self._original_attrs = original_attrs
        self._close_lock = threading.Lock()

    @classmethod
    def open(cls, port: str, baudrate: int) -> "SerialChannel":
        """Open *port* at *baudrate*.

        Raises:
            SerialOpenError: the device could not be opened.
        """
        try:
            # Non-blocking during setup so a missing carrier cannot hang open().
            fd = os.open(port, os.O_RDWR | os.O_NOCTTY | os.O_NONBLOCK)
        except OSError as e:
            raise SerialOpenError(e.errno, f"Could not open port {port}: {e.strerror}") from e

        try:
            original_attrs = cls._configure(fd, port, baudrate)

            # Blocking reads from here on.
            flags = fcntl.fcntl(fd, fcntl.F_GETFL)
            fcntl.fcntl(fd, fcntl.F_SETFL, flags & ~os.O_NONBLOCK)
        except OSError:  # pragma: no cover - cleanup guard
            os.close(fd)
            raise

        logger.info("Serial port %s opened at %d baud", port, baudrate)
        return cls(port, baudrate, fd, original_attrs)

    @staticmethod
    def _configure(fd: int, port: str, baudrate: int) -> list[Any] | None:
        """Apply raw mode; return the attributes to restore on close."""
        try:
            original_attrs = termios.tcgetattr(fd)
        except termios.error as e:
            logger.warning("Cannot read line settings of %s (%s); leaving them untouched", port, e)
            return None

        speed = BAUDRATE_MAP.get(baudrate)
        if speed is None:
            logger.warning("Unsupported baudrate %d for %s; keeping current speed", baudrate, port)

        try:
            termios.tcsetattr(fd, termios.TCSANOW, apply_raw_mode(original_attrs, speed))
        except termios.error as e:
            logger.warning("Failed to apply line settings to %s: %s", port, e)

        try:
            termios.tcflush(fd, termios.TCIOFLUSH)
        except termios.error:
            pass

        return original_attrs

    @property
    def port(self) -> str:
        """Return the port name."""
        return self._port

    @property
    def baudrate(self) -> int:
        return self._baudrate

    @property
    def fd(self) -> int | None:
        return self._fd

    @property
    def is_open(self) -> bool:
        return self._fd is not None

    def fileno(self) -> int:
        if self._fd is None:
            raise SerialException(errno.EBADF, "Port not open")
        return self._fd

    def read_chunk(self, timeout: float | None = None, size: int = READ_CHUNK_SIZE) -> bytes:
        """Read up to *size* bytes, blocking until data arrives.

        With *timeout* set, waits at most that many seconds and returns
        ``b""`` when nothing arrived. Interrupted or would-block reads also
        return ``b""``.

        Raises:
            SerialException: the read failed, the device reported end of
                file, or the channel is closed.
        """
        fd = self.fileno()

        if timeout is not None:
            try:
                ready, _, _ = select.select([fd], [], [], timeout)
            except InterruptedError:
                return b""
            except (OSError, ValueError) as e:
                raise SerialException(errno.EBADF, f"Poll error on {self._port}: {e}") from e
            if not ready:
                return b""

        try:
            data = os.read(fd, size)
        except OSError as e:
            if e.errno in _EMPTY_READ_ERRNOS:
                return b""
            raise SerialException(e.errno, f"Read error on {self._port}: {e.strerror}") from e

        if not data:
            # A readable descriptor with nothing to read means the device went away.
            raise SerialException(errno.EIO, f"End of file on {self._port}")
        return data

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """Write all of *data*.

        Raises:
            SerialException: the write failed or was short.
        """
        fd = self.fileno()
        if not data:
            return 0

        payload = bytes(data)
        try:
            written = os.write(fd, payload)
        except OSError as e:
            raise SerialException(e.errno, f"Write error on {self._port}: {e.strerror}") from e

        if written != len(payload):
            raise SerialException(
                errno.EIO,
                f"Short write on {self._port}: {written} of {len(payload)} bytes",
            )
        return written

    def close(self) -> None:
        """Restore the original line settings and close the descriptor."""
        with self._close_lock:
            fd = self._fd
            if fd is None:
                return
            self._fd = None
            try:
                if self._original_attrs is not None:
                    try:
                        termios.tcsetattr(fd, termios.TCSANOW, self._original_attrs)
                    except termios.error as e:
                        logger.warning("Failed to restore line settings of %s: %s", self._port, e)
                os.close(fd)
            except OSError as e:
                logger.warning("Error closing %s: %s", self._port, e)
            finally:
                self._original_attrs = None
        logger.info("Serial port %s closed", self._port)

    def __enter__(self) -> "SerialChannel":
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()


__all__ = [
    "BAUDRATE_MAP",
    "SerialChannel",
    "SerialException",
    "SerialOpenError",
    "apply_raw_mode",
]
