"""Secure gateway for the OpenNotes API with a quiz store."""

__version__ = "1.0.0"
