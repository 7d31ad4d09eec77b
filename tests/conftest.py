"""Pytest configuration for MidiSerial tests."""

from __future__ import annotations

import logging
import os
import pty
from collections.abc import Iterator

import pytest


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "fuzz: seeded randomized robustness tests")


@pytest.fixture
def pty_pair() -> Iterator[tuple[int, str]]:
    """Create a PTY pair; the slave path stands in for a serial device."""
    master_fd, slave_fd = pty.openpty()
    slave_name = os.ttyname(slave_fd)
    os.close(slave_fd)
    yield master_fd, slave_name
    try:
        os.close(master_fd)
    except OSError:
        pass


@pytest.fixture(autouse=True)
def reset_logging_handlers():
    """Close and remove all logging handlers after each test to prevent ResourceWarnings."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        try:
            handler.close()
        except (OSError, RuntimeError):
            pass
        root.removeHandler(handler)
