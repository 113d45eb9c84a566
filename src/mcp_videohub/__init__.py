"""Videohub preset manager: read, store, compare and apply crosspoint routing."""

__version__ = "1.0.0"
