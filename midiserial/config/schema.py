"""Marshmallow schema for RuntimeConfig validation."""

from __future__ import annotations

from typing import Any, Dict

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, pre_load, validate, validates_schema

from ..const import (
    DEFAULT_DEBUG_LOGGING,
    DEFAULT_LOG_SYSLOG,
    DEFAULT_MAX_READ_FAILURES,
    DEFAULT_MAX_SYSEX_BYTES,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SERIAL_BAUD,
    DEFAULT_SERIAL_PORT,
)
from .model import RuntimeConfig


class RuntimeConfigSchema(Schema):
    """Declarative validation schema for MidiSerial configuration."""

    class Meta:
        unknown = EXCLUDE

    # Serial
    serial_port = fields.Str(load_default=DEFAULT_SERIAL_PORT, validate=validate.Length(min=1))
    serial_baud = fields.Int(load_default=DEFAULT_SERIAL_BAUD, validate=validate.Range(min=1))
    poll_interval = fields.Float(load_default=DEFAULT_POLL_INTERVAL, validate=validate.Range(min=0.01))
    max_read_failures = fields.Int(load_default=DEFAULT_MAX_READ_FAILURES, validate=validate.Range(min=1))

    # MIDI
    input_index = fields.Int(load_default=None, allow_none=True, validate=validate.Range(min=0))
    output_index = fields.Int(load_default=None, allow_none=True, validate=validate.Range(min=0))
    create_name = fields.Str(load_default=None, allow_none=True, validate=validate.Length(min=1))
    midi_backend = fields.Str(load_default=None, allow_none=True, validate=validate.Length(min=1))
    max_sysex_bytes = fields.Int(load_default=DEFAULT_MAX_SYSEX_BYTES, validate=validate.Range(min=2))

    # Diagnostics
    verbose = fields.Bool(load_default=False)
    debug_logging = fields.Bool(load_default=DEFAULT_DEBUG_LOGGING)
    log_syslog = fields.Bool(load_default=DEFAULT_LOG_SYSLOG)

    @pre_load
    def drop_unset(self, data: Dict[str, Any], **kwargs: Any) -> Dict[str, Any]:
        # Options left unset on the command line fall back to the defaults.
        return {key: value for key, value in data.items() if value is not None}

    @validates_schema
    def validate_port_selection(self, data: Dict[str, Any], **kwargs: Any) -> None:
        if data.get("create_name") is None:
            return
        if data.get("input_index") is not None or data.get("output_index") is not None:
            raise ValidationError(
                "create_name cannot be combined with input_index or output_index",
                field_name="create_name",
            )

    @post_load
    def make_config(self, data: Dict[str, Any], **kwargs: Any) -> RuntimeConfig:
        data["serial_port"] = data["serial_port"].strip()
        return RuntimeConfig(**data)
