"""Configuration helpers for MidiSerial."""

from . import logging, schema, settings  # noqa: F401
from .model import RuntimeConfig
from .settings import load_runtime_config

__all__ = ["RuntimeConfig", "load_runtime_config", "logging", "schema", "settings"]
