"""Preset Store for saving and loading hub configurations.

Handles:
- Reading/writing JSON preset files
- Directory structure initialization
- Preset checksums
- Listing presets with their descriptions

Preset file layout (indices are 0-based, keys are strings):

    {
      "description": "Sunday service",
      "routing": {"0": 3, "1": 0},
      "inputs": {"0": "Camera 1"},
      "outputs": {"0": "Program"},
      "checksum": "sha256:...",
      "saved_at": "2025-09-10T08:00:00+00:00"
    }
"""
import hashlib
import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..hub_engine.schema import DeviceState, UNNAMED_LABEL

logger = logging.getLogger(__name__)

# Default base directory
DEFAULT_BASE_DIR = Path.home() / ".videohub"

PRESET_SUFFIX = ".json"


class PresetError(Exception):
    """Base error for preset storage."""
    pass


class PresetNotFoundError(PresetError):
    pass


class PresetExistsError(PresetError):
    pass


class PresetFormatError(PresetError):
    """A preset file could not be decoded."""
    pass


@dataclass
class PresetInfo:
    """Name and description of a stored preset."""
    name: str
    description: str


def compute_checksum(data: dict) -> str:
    """
    Compute SHA256 checksum over the preset content fields.

    Metadata (checksum, saved_at) is excluded.
    """
    content = {k: data.get(k) for k in ("description", "routing", "inputs", "outputs")}
    content_str = json.dumps(content, sort_keys=True, separators=(",", ":"))
    return f"sha256:{hashlib.sha256(content_str.encode()).hexdigest()[:16]}"


def state_to_preset(state: DeviceState) -> dict:
    """Serialize the stored fields of a state."""
    data = {
        "description": state.description,
        "routing": {str(k): v for k, v in sorted(state.routing.items())},
        "inputs": {str(k): v for k, v in sorted(state.input_labels.items())},
        "outputs": {str(k): v for k, v in sorted(state.output_labels.items())},
    }
    data["checksum"] = compute_checksum(data)
    data["saved_at"] = datetime.now(timezone.utc).isoformat()
    return data


def preset_to_state(data: dict, source: str = "") -> DeviceState:
    """
    Rebuild a DeviceState from preset data.

    Raises:
        PresetFormatError: If a section is not a mapping or an index is not a non-negative integer
    """
    if not isinstance(data, dict):
        raise PresetFormatError("Preset must be a JSON object")

    def int_keys(section: str) -> dict:
        block = data.get(section) or {}
        if not isinstance(block, dict):
            raise PresetFormatError(f"'{section}' must be an object")
        try:
            keys = {int(k): v for k, v in block.items()}
        except (TypeError, ValueError) as e:
            raise PresetFormatError(f"Invalid index in '{section}': {e}")
        if any(k < 0 for k in keys):
            raise PresetFormatError(f"Negative index in '{section}'")
        return keys

    try:
        routing = {k: int(v) for k, v in int_keys("routing").items()}
    except (TypeError, ValueError) as e:
        raise PresetFormatError(f"Invalid input index in 'routing': {e}")
    if any(v < 0 for v in routing.values()):
        raise PresetFormatError("Negative input index in 'routing'")

    return DeviceState(
        input_labels={k: str(v) if v else UNNAMED_LABEL for k, v in int_keys("inputs").items()},
        output_labels={k: str(v) if v else UNNAMED_LABEL for k, v in int_keys("outputs").items()},
        routing=routing,
        description=str(data.get("description") or ""),
        source=source,
    )


class PresetStore:
    """
    Manages preset storage and retrieval.

    Directory structure:
        ~/.videohub/
        └── presets/
            ├── sunday-service.json
            └── rehearsal.json
    """

    def __init__(self, base_dir: Optional[Path] = None):
        """
        Initialize the preset store.

        Args:
            base_dir: Base directory (default: $VIDEOHUB_PRESETS_DIR or ~/.videohub)
        """
        base_dir = base_dir or os.environ.get("VIDEOHUB_PRESETS_DIR")
        self.base_dir = Path(base_dir) if base_dir else DEFAULT_BASE_DIR
        self._ensure_directories()

    @property
    def presets_dir(self) -> Path:
        return self.base_dir / "presets"

    def _ensure_directories(self) -> None:
        """Create directory structure if it doesn't exist."""
        self.presets_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Preset store initialized at {self.base_dir}")

    def preset_path(self, name: str) -> Path:
        """
        Path of a preset file.

        Raises:
            ValueError: If `name` is empty or contains path parts
        """
        name = name.strip()
        if name.endswith(PRESET_SUFFIX):
            name = name[:-len(PRESET_SUFFIX)]
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise ValueError(f"Invalid preset name: {name!r}")
        return self.presets_dir / f"{name}{PRESET_SUFFIX}"

    def exists(self, name: str) -> bool:
        return self.preset_path(name).exists()

    def save(self, name: str, state: DeviceState, overwrite: bool = False) -> Path:
        """
        Save a state as a preset.

        Args:
            name: Preset name (file stem)
            state: State to store (labels, routing, description)
            overwrite: Replace an existing preset

        Returns:
            Path of the written file

        Raises:
            PresetExistsError: If the preset exists and overwrite is False
        """
        path = self.preset_path(name)
        if path.exists() and not overwrite:
            raise PresetExistsError(f"Preset '{path.stem}' already exists")

        data = state_to_preset(state)
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")

        logger.info(f"Saved preset '{path.stem}' ({len(state.routing)} routes)")
        return path

    def load(self, name: str) -> DeviceState:
        """
        Load a preset.

        Raises:
            PresetNotFoundError: If no such preset exists
            PresetFormatError: If the file is not a valid preset
        """
        path = self.preset_path(name)
        if not path.exists():
            raise PresetNotFoundError(f"Preset '{path.stem}' not found")

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PresetFormatError(f"Cannot read preset '{path.stem}': {e}")

        checksum = data.get("checksum") if isinstance(data, dict) else None
        if checksum and checksum != compute_checksum(data):
            logger.warning(f"Preset '{path.stem}' checksum mismatch (edited by hand?)")

        state = preset_to_state(data, source=str(path))
        logger.info(f"Loaded preset '{path.stem}' ({len(state.routing)} routes)")
        return state

    def get_description(self, name: str) -> str:
        """Description of a preset, or a placeholder if unreadable."""
        try:
            data = json.loads(self.preset_path(name).read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return "(cannot open)"
        if not isinstance(data, dict) or not data.get("description"):
            return "(no description)"
        return str(data["description"])

    def list_presets(self) -> list[PresetInfo]:
        """List all presets with descriptions, sorted by name."""
        return [
            PresetInfo(name=p.stem, description=self.get_description(p.stem))
            for p in sorted(self.presets_dir.glob(f"*{PRESET_SUFFIX}"))
        ]

    def delete(self, name: str) -> bool:
        """Delete a preset. Returns False if it did not exist."""
        path = self.preset_path(name)
        if path.exists():
            path.unlink()
            logger.info(f"Deleted preset '{path.stem}'")
            return True
        return False
