"""Durable pending-card queue with AnkiConnect synchronization."""

__version__ = "0.1.0"
