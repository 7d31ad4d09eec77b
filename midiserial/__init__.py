"""MidiSerial package initialisation."""

__version__ = "1.0.0"
