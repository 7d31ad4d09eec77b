"""MIDI framing helpers for MidiSerial."""

from .midi import RawMessage, as_raw_message, data_length, encode, format_message
from .reassembler import MessageReassembler, Phase
from . import midi, reassembler

__all__ = [
    "MessageReassembler",
    "Phase",
    "RawMessage",
    "as_raw_message",
    "data_length",
    "encode",
    "format_message",
    "midi",
    "reassembler",
]
