"""MIDI-side endpoints for the bridge, backed by mido.

The bridge only needs two narrow surfaces: an input that pushes complete
messages into a callback once started, and an output that sends a message
immediately. :class:`EventSubsystem` loads the mido backend once for the
process, opens endpoints by index or creates virtual ones by name, and closes
every endpoint it handed out when the subsystem scope ends.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any, Protocol

import mido

from .protocol.midi import RawMessage, as_raw_message

logger = logging.getLogger("midiserial.endpoints")

MessageCallback = Callable[[RawMessage], Any]


class EndpointError(LookupError):
    """A MIDI endpoint could not be selected or opened."""
    pass


class EventInput(Protocol):
    """Source of MIDI messages delivered asynchronously to a callback."""

    name: str

    def start(self, callback: MessageCallback) -> None: ...

    def stop(self) -> None: ...

    def close(self) -> None: ...


class EventOutput(Protocol):
    """Sink accepting one MIDI message at a time."""

    name: str

    def send_now(self, message: RawMessage) -> None: ...

    def close(self) -> None: ...


class MidoInput:
    """MIDI input port that starts delivering once :meth:`start` is called.

    The underlying port is opened on start so that no message is delivered
    before the bridge is ready to write to the serial line. mido invokes the
    callback from the backend's own thread.
    """

    def __init__(self, backend: mido.Backend, name: str, *, virtual: bool = False) -> None:
        self._backend = backend
        self.name = name
        self.virtual = virtual
        self._port: Any = None
        self._callback: MessageCallback | None = None
        self._lock = threading.Lock()

    @property
    def started(self) -> bool:
        return self._port is not None

    def start(self, callback: MessageCallback) -> None:
        with self._lock:
            if self._port is not None:
                return
            self._callback = callback
            try:
                self._port = self._backend.open_input(
                    self.name,
                    virtual=self.virtual,
                    callback=self._dispatch,
                )
            except OSError as e:
                raise EndpointError(f"Cannot open MIDI input '{self.name}': {e}") from e
        logger.info("MIDI input started: %s", self.name)

    def _dispatch(self, message: mido.Message) -> None:
        callback = self._callback
        if callback is None:
            return
        callback(as_raw_message(message))

    def stop(self) -> None:
        with self._lock:
            port, self._port = self._port, None
            self._callback = None
        if port is not None:
            port.close()
            logger.info("MIDI input stopped: %s", self.name)

    def close(self) -> None:
        self.stop()


class MidoOutput:
    """MIDI output port with an immediate send."""

    def __init__(self, port: Any) -> None:
        self._port = port
        self.name: str = port.name

    @property
    def closed(self) -> bool:
        return bool(self._port.closed)

    def send_now(self, message: RawMessage) -> None:
        """Send *message* right away.

        Raises:
            ValueError: the bytes do not form a message mido understands.
        """
        self._port.send(mido.Message.from_bytes(message.data))

    def close(self) -> None:
        if not self._port.closed:
            self._port.close()
            logger.info("MIDI output closed: %s", self.name)


def _select(names: Sequence[str], index: int, kind: str) -> str:
    if not 0 <= index < len(names):
        raise EndpointError(f"No MIDI {kind} device with index {index} ({len(names)} available)")
    return names[index]


class EventSubsystem:
    """Scoped handle on the MIDI backend.

    Usage:
        with EventSubsystem() as midi:
            output = midi.open_output(0)
            ...
    """

    def __init__(self, backend: str | None = None) -> None:
        try:
            self._backend = mido.Backend(backend, load=True)
        except ImportError as e:
            raise EndpointError(f"Cannot load MIDI backend {backend or 'default'}: {e}") from e
        self._endpoints: list[MidoInput | MidoOutput] = []
        logger.debug("MIDI backend loaded: %s", self._backend.name)

    @property
    def backend_name(self) -> str:
        return str(self._backend.name)

    def input_names(self) -> list[str]:
        return list(self._backend.get_input_names())

    def output_names(self) -> list[str]:
        return list(self._backend.get_output_names())

    def open_input(self, index: int) -> MidoInput:
        name = _select(self.input_names(), index, "input")
        logger.info("Opening MIDI input: %s", name)
        return self._track(MidoInput(self._backend, name))

    def create_input(self, name: str) -> MidoInput:
        logger.info("Creating MIDI input: %s", name)
        return self._track(MidoInput(self._backend, name, virtual=True))

    def open_output(self, index: int) -> MidoOutput:
        name = _select(self.output_names(), index, "output")
        logger.info("Opening MIDI output: %s", name)
        return self._track(MidoOutput(self._open_output_port(name, virtual=False)))

    def create_output(self, name: str) -> MidoOutput:
        logger.info("Creating MIDI output: %s", name)
        return self._track(MidoOutput(self._open_output_port(name, virtual=True)))

    def _open_output_port(self, name: str, *, virtual: bool) -> Any:
        try:
            return self._backend.open_output(name, virtual=virtual)
        except OSError as e:
            raise EndpointError(f"Cannot open MIDI output '{name}': {e}") from e

    def _track(self, endpoint: Any) -> Any:
        self._endpoints.append(endpoint)
        return endpoint

    def close(self) -> None:
        """Close every endpoint opened through this subsystem."""
        while self._endpoints:
            endpoint = self._endpoints.pop()
            try:
                endpoint.close()
            except OSError as e:
                logger.warning("Error closing MIDI endpoint %s: %s", endpoint.name, e)

    def __enter__(self) -> "EventSubsystem":
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()


def format_port_listing(names: Sequence[str]) -> str:
    """Render port names as ``"0: name"`` lines."""
    return "\n".join(f"{index}: {name}" for index, name in enumerate(names))


__all__ = [
    "EndpointError",
    "EventInput",
    "EventOutput",
    "EventSubsystem",
    "MessageCallback",
    "MidoInput",
    "MidoOutput",
    "format_port_listing",
]
