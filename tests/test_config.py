"""Tests for midiserial.config."""

from __future__ import annotations

import pytest
from marshmallow import ValidationError

from midiserial.config import RuntimeConfig, load_runtime_config
from midiserial.config.schema import RuntimeConfigSchema
from midiserial.const import (
    DEFAULT_MAX_READ_FAILURES,
    DEFAULT_MAX_SYSEX_BYTES,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SERIAL_BAUD,
    DEFAULT_SERIAL_PORT,
)


def test_defaults_when_nothing_is_given() -> None:
    config = load_runtime_config()

    assert config == RuntimeConfig()
    assert config.serial_port == DEFAULT_SERIAL_PORT
    assert config.serial_baud == DEFAULT_SERIAL_BAUD
    assert config.poll_interval == DEFAULT_POLL_INTERVAL
    assert config.max_sysex_bytes == DEFAULT_MAX_SYSEX_BYTES
    assert config.max_read_failures == DEFAULT_MAX_READ_FAILURES
    assert config.input_index is None
    assert config.output_index is None
    assert not config.verbose


def test_unset_options_fall_back_to_defaults() -> None:
    config = load_runtime_config({"serial_port": None, "serial_baud": None, "verbose": True})
    assert config.serial_port == DEFAULT_SERIAL_PORT
    assert config.serial_baud == DEFAULT_SERIAL_BAUD
    assert config.verbose


def test_explicit_values() -> None:
    config = load_runtime_config(
        {
            "serial_port": " /dev/ttyUSB0 ",
            "serial_baud": 115200,
            "input_index": 1,
            "output_index": 0,
            "midi_backend": "mido.backends.rtmidi",
            "debug_logging": True,
        }
    )
    assert config.serial_port == "/dev/ttyUSB0"
    assert config.serial_baud == 115200
    assert config.input_index == 1
    assert config.output_index == 0
    assert config.midi_backend == "mido.backends.rtmidi"
    assert config.debug_logging


def test_unknown_keys_are_ignored() -> None:
    config = load_runtime_config({"list_devices": True, "verbose": False})
    assert isinstance(config, RuntimeConfig)


@pytest.mark.parametrize(
    ("values", "field"),
    [
        ({"serial_baud": 0}, "serial_baud"),
        ({"input_index": -1}, "input_index"),
        ({"output_index": -3}, "output_index"),
        ({"serial_port": ""}, "serial_port"),
        ({"poll_interval": 0.0}, "poll_interval"),
        ({"max_sysex_bytes": 1}, "max_sysex_bytes"),
        ({"max_read_failures": 0}, "max_read_failures"),
        ({"create_name": ""}, "create_name"),
    ],
)
def test_out_of_range_values_are_rejected(values: dict[str, object], field: str) -> None:
    with pytest.raises(ValidationError) as excinfo:
        load_runtime_config(values)
    assert field in excinfo.value.messages


def test_create_name_conflicts_with_indices() -> None:
    with pytest.raises(ValidationError) as excinfo:
        load_runtime_config({"create_name": "Synth", "input_index": 0})
    assert "create_name" in excinfo.value.messages


def test_schema_loads_dataclass_directly() -> None:
    config = RuntimeConfigSchema().load({"serial_baud": "9600"})
    assert isinstance(config, RuntimeConfig)
    assert config.serial_baud == 9600


class TestVirtualPortName:
    def test_default_pair_when_nothing_selected(self) -> None:
        assert RuntimeConfig().virtual_port_name == "MidiSerial"

    def test_explicit_name(self) -> None:
        assert RuntimeConfig(create_name="Bridge").virtual_port_name == "Bridge"

    @pytest.mark.parametrize(("input_index", "output_index"), [(0, None), (None, 2), (1, 1)])
    def test_no_virtual_ports_with_indices(self, input_index: int | None, output_index: int | None) -> None:
        config = RuntimeConfig(input_index=input_index, output_index=output_index)
        assert config.virtual_port_name is None
