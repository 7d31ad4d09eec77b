"""Settings loader for the MidiSerial bridge.

Configuration comes from the command line only; the parsed options are handed
over as a mapping and validated here.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .model import RuntimeConfig
from .schema import RuntimeConfigSchema

logger = logging.getLogger(__name__)


def load_runtime_config(values: Mapping[str, Any] | None = None) -> RuntimeConfig:
    """Validate *values* and build a :class:`RuntimeConfig`.

    Raises:
        marshmallow.ValidationError: an option is out of range or options
            conflict.
    """
    config: RuntimeConfig = RuntimeConfigSchema().load(dict(values or {}))
    logger.debug("Runtime configuration loaded: %s", config)
    return config


__all__ = ["RuntimeConfig", "load_runtime_config"]
