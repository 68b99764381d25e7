"""Backup generator broker: keeps backup generators balanced against load and storage."""

__version__ = "0.1.0"
