"""Preset Store package for saving hub configurations as JSON presets.

This package provides:
- PresetStore: Main class for reading/writing presets
- PresetInfo: Name and description listing entry
- PresetError and subclasses for storage failures

Directory structure managed:
    ~/.videohub/
    └── presets/          # One JSON file per preset
"""

from .store import (
    PresetStore,
    PresetInfo,
    PresetError,
    PresetNotFoundError,
    PresetExistsError,
    PresetFormatError,
    compute_checksum,
    DEFAULT_BASE_DIR,
)

__all__ = [
    "PresetStore",
    "PresetInfo",
    "PresetError",
    "PresetNotFoundError",
    "PresetExistsError",
    "PresetFormatError",
    "compute_checksum",
    "DEFAULT_BASE_DIR",
]
