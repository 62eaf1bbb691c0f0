"""Adapters for external systems: the AnkiConnect note service."""
