#!/usr/bin/env python3
"""Command-line entry point for the MidiSerial bridge.

Architecture:
    main() -> parse options -> RuntimeConfig -> EventSubsystem
        ├── MIDI input  (by index, or virtual)
        ├── MIDI output (by index, or virtual)
        └── Bridge.run() until SIGINT/SIGTERM
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from collections.abc import Sequence
from typing import Any, NoReturn

from marshmallow import ValidationError

from . import __version__
from .bridge import Bridge
from .config.logging import configure_logging
from .config.model import RuntimeConfig
from .config.settings import load_runtime_config
from .const import DEFAULT_SERIAL_BAUD, DEFAULT_SERIAL_PORT, EXIT_FAILURE, EXIT_OK, EXIT_USAGE
from .endpoints import EndpointError, EventInput, EventOutput, EventSubsystem, format_port_listing
from .transport.termios_serial import SerialException, SerialOpenError

logger = logging.getLogger("midiserial")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="midiserial",
        description="Bridge MIDI ports and a raw serial line in both directions.",
    )
    parser.add_argument("-p", dest="serial_port", metavar="FILE",
                        help=f"set serial port (default: {DEFAULT_SERIAL_PORT})")
    parser.add_argument("-s", dest="serial_baud", metavar="NUM", type=int,
                        help=f"set serial speed (default: {DEFAULT_SERIAL_BAUD})")
    parser.add_argument("-v", dest="verbose", action="store_true",
                        help="verbose, prints messages sent/received")
    parser.add_argument("-i", dest="input_index", metavar="NUM", type=int,
                        help="set MIDI input device")
    parser.add_argument("-o", dest="output_index", metavar="NUM", type=int,
                        help="set MIDI output device")
    parser.add_argument("-c", dest="create_name", metavar="NAME",
                        help="create MIDI input/output device")
    parser.add_argument("-l", dest="list_devices", action="store_true",
                        help="list MIDI input/output devices and exit")
    parser.add_argument("--backend", dest="midi_backend", metavar="MODULE",
                        help="mido backend module (default: mido's default)")
    parser.add_argument("--syslog", dest="log_syslog", action="store_true",
                        help="send diagnostics to syslog instead of stderr")
    parser.add_argument("--debug", dest="debug_logging", action="store_true",
                        help="enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def list_devices(midi: EventSubsystem) -> str:
    return "\n".join(
        (
            "MIDI output devices:",
            format_port_listing(midi.output_names()),
            "MIDI input devices:",
            format_port_listing(midi.input_names()),
        )
    )


def open_endpoints(config: RuntimeConfig, midi: EventSubsystem) -> tuple[EventInput | None, EventOutput | None]:
    """Open or create the MIDI ports selected by *config*."""
    virtual_name = config.virtual_port_name
    if virtual_name is not None:
        return midi.create_input(virtual_name), midi.create_output(virtual_name)

    event_input = midi.open_input(config.input_index) if config.input_index is not None else None
    event_output = midi.open_output(config.output_index) if config.output_index is not None else None
    return event_input, event_output


class _StopOnSignal:
    """Set *event* when SIGINT or SIGTERM arrives."""

    __slots__ = ("event", "_previous")

    def __init__(self, event: threading.Event) -> None:
        self.event = event
        self._previous: dict[int, Any] = {}

    def __call__(self, signum: int, frame: object) -> None:
        logger.info("Received signal %d; stopping bridge.", signum)
        self.event.set()

    def __enter__(self) -> "_StopOnSignal":
        for signum in (signal.SIGINT, signal.SIGTERM):
            self._previous[signum] = signal.signal(signum, self)
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()


def run(config: RuntimeConfig, list_only: bool = False) -> int:
    """Run the bridge described by *config*; return the process exit code."""
    stop_event = threading.Event()
    try:
        with _StopOnSignal(stop_event), EventSubsystem(config.midi_backend) as midi:
            if list_only:
                print(list_devices(midi))
                return EXIT_OK

            event_input, event_output = open_endpoints(config, midi)
            if stop_event.is_set():
                logger.info("Stopped before the bridge started.")
                return EXIT_OK
            bridge = Bridge(
                config.serial_port,
                config.serial_baud,
                event_input,
                event_output,
                config.verbose,
                poll_interval=config.poll_interval,
                max_sysex_bytes=config.max_sysex_bytes,
                max_read_failures=config.max_read_failures,
            )
            bridge.run(stop_event)
    except SerialOpenError as exc:
        logger.critical("%s", exc)
        return EXIT_FAILURE
    except EndpointError as exc:
        logger.critical("%s", exc)
        return EXIT_FAILURE
    except SerialException as exc:
        logger.critical("Serial link failed: %s", exc)
        return EXIT_FAILURE
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> NoReturn:  # pragma: no cover (Entry point wrapper)
    parser = build_parser()
    args = parser.parse_args(argv)
    options = vars(args)
    list_only = options.pop("list_devices")

    try:
        config = load_runtime_config(options)
    except ValidationError as exc:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {exc.messages}", file=sys.stderr)
        sys.exit(EXIT_USAGE)

    configure_logging(config)
    sys.exit(run(config, list_only=list_only))


if __name__ == "__main__":
    main()
