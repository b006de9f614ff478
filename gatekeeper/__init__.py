"""Gatekeeper: plate-based barrier access control and owner notifications."""

__version__ = "1.0.0"
