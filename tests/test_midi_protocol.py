"""Tests for midiserial.protocol.midi."""

from __future__ import annotations

import mido
import pytest

from midiserial.protocol import midi
from midiserial.protocol.midi import RawMessage, as_raw_message, data_length, encode, format_message


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (0x80, 2), (0x9F, 2), (0xA5, 2), (0xB0, 2),
        (0xC0, 1), (0xDF, 1), (0xE7, 2),
        (0xF1, 1), (0xF2, 2), (0xF3, 1), (0xF6, 0),
        (0xF8, 0), (0xFA, 0), (0xFF, 0),
    ],
)
def test_data_length_table(status: int, expected: int) -> None:
    assert data_length(status) == expected


@pytest.mark.parametrize("status", [0xF0, 0xF4, 0xF5, 0xF7, 0xF9, 0xFD])
def test_data_length_unknown_or_variable(status: int) -> None:
    assert data_length(status) is None


def test_status_classification() -> None:
    assert midi.is_status(0x80)
    assert not midi.is_status(0x7F)
    assert midi.is_channel_status(0xEF)
    assert not midi.is_channel_status(0xF0)
    assert midi.is_realtime(0xF8)
    assert not midi.is_realtime(0xF7)
    assert not midi.is_realtime(0xF9)
    assert midi.is_undefined_realtime(0xFD)


def test_raw_message_properties() -> None:
    message = RawMessage(b"\x93\x3c\x7f")
    assert message.status == 0x93
    assert message.channel == 3
    assert len(message) == 3
    assert RawMessage(b"\xf8").channel is None


def test_raw_message_is_immutable_and_comparable() -> None:
    message = RawMessage.from_iterable([0x90, 0x3C, 0x7F])
    assert message == RawMessage(b"\x90\x3c\x7f")
    with pytest.raises(AttributeError):
        message.data = b""  # type: ignore[misc]


def test_encode_is_identity() -> None:
    assert encode(RawMessage(b"\xf0\x01\x02\xf7")) == b"\xf0\x01\x02\xf7"


def test_as_raw_message_from_mido() -> None:
    message = mido.Message("note_on", channel=0, note=60, velocity=127)
    assert as_raw_message(message) == RawMessage(b"\x90\x3c\x7f")


def test_as_raw_message_from_sysex_mido() -> None:
    message = mido.Message("sysex", data=[1, 2, 3])
    assert as_raw_message(message) == RawMessage(b"\xf0\x01\x02\x03\xf7")


def test_as_raw_message_passthrough_and_sequences() -> None:
    raw = RawMessage(b"\xc0\x05")
    assert as_raw_message(raw) is raw
    assert as_raw_message(bytearray(b"\xc0\x05")) == raw
    assert as_raw_message([0xC0, 0x05]) == raw


def test_as_raw_message_rejects_unknown_types() -> None:
    with pytest.raises(TypeError):
        as_raw_message(42)


def test_format_message() -> None:
    assert format_message(b"\x90\x3c\x7f") == " 0x90 0x3c 0x7f"
    assert format_message(b"") == ""
