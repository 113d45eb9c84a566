"""Tests for the Preset Store."""
import json

import pytest

from mcp_videohub.hub_engine.schema import DeviceState, UNNAMED_LABEL
from mcp_videohub.preset_store import (
    PresetStore,
    PresetInfo,
    PresetNotFoundError,
    PresetExistsError,
    PresetFormatError,
    compute_checksum,
)


@pytest.fixture
def store(tmp_path):
    return PresetStore(base_dir=tmp_path)


@pytest.fixture
def state():
    return DeviceState(
        input_labels={0: "Camera 1", 1: "Camera 2"},
        output_labels={0: "Program", 1: "Monitor"},
        routing={0: 1, 1: 0},
        description="Sunday service",
        source="videohub://10.0.0.1:9990",
    )


class TestPresetStore:
    """Tests for PresetStore."""

    def test_init_creates_directories(self, tmp_path):
        """Store creates its presets directory."""
        store = PresetStore(base_dir=tmp_path / "videohub")
        assert store.presets_dir.is_dir()

    def test_env_base_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VIDEOHUB_PRESETS_DIR", str(tmp_path / "env"))
        store = PresetStore()
        assert store.presets_dir == tmp_path / "env" / "presets"

    def test_save_and_load(self, store, state):
        """Loading reproduces labels, routing and description."""
        path = store.save("sunday", state)
        assert path == store.presets_dir / "sunday.json"

        loaded = store.load("sunday")
        assert loaded.input_labels == state.input_labels
        assert loaded.output_labels == state.output_labels
        assert loaded.routing == state.routing
        assert loaded.description == "Sunday service"
        assert loaded.source == str(path)

    def test_file_layout(self, store, state):
        """Indices are stored as string keys with metadata alongside."""
        data = json.loads(store.save("sunday", state).read_text())
        assert data["routing"] == {"0": 1, "1": 0}
        assert data["inputs"]["1"] == "Camera 2"
        assert data["outputs"]["0"] == "Program"
        assert data["checksum"].startswith("sha256:")
        assert data["checksum"] == compute_checksum(data)
        assert "saved_at" in data

    def test_json_suffix_accepted(self, store, state):
        store.save("rehearsal.json", state)
        assert store.exists("rehearsal")
        assert store.load("rehearsal.json").routing == state.routing

    def test_refuses_overwrite(self, store, state):
        store.save("sunday", state)
        with pytest.raises(PresetExistsError):
            store.save("sunday", state)

    def test_overwrite(self, store, state):
        store.save("sunday", state)
        state.routing = {0: 0}
        store.save("sunday", state, overwrite=True)
        assert store.load("sunday").routing == {0: 0}

    def test_load_missing(self, store):
        with pytest.raises(PresetNotFoundError):
            store.load("nothing")

    def test_load_bad_json(self, store):
        (store.presets_dir / "broken.json").write_text("{not json")
        with pytest.raises(PresetFormatError):
            store.load("broken")

    @pytest.mark.parametrize("content", [
        {"routing": {"x": 1}},
        {"routing": {"0": -1}},
        {"routing": {"-3": 2}},
        {"inputs": {"-1": "Camera 1"}},
    ])
    def test_load_bad_index(self, store, content):
        (store.presets_dir / "bad.json").write_text(json.dumps(content))
        with pytest.raises(PresetFormatError):
            store.load("bad")

    def test_hand_written_preset(self, store):
        """Presets without metadata load; empty labels become unnamed."""
        (store.presets_dir / "manual.json").write_text(json.dumps({
            "routing": {"2": 5},
            "inputs": {"5": ""},
        }))
        loaded = store.load("manual")
        assert loaded.routing == {2: 5}
        assert loaded.input_labels == {5: UNNAMED_LABEL}
        assert loaded.description == ""

    def test_edited_preset_still_loads(self, store, state):
        """A checksum mismatch only warns."""
        path = store.save("sunday", state)
        data = json.loads(path.read_text())
        data["routing"]["0"] = 7
        path.write_text(json.dumps(data))
        assert store.load("sunday").routing[0] == 7

    @pytest.mark.parametrize("name", ["", "  ", "..", "../etc/passwd", "a\\b"])
    def test_invalid_names(self, store, name):
        with pytest.raises(ValueError):
            store.preset_path(name)

    def test_list_presets(self, store, state):
        """Presets are listed by name with descriptions or placeholders."""
        store.save("b-show", state)
        state.description = ""
        store.save("a-rehearsal", state)
        (store.presets_dir / "c-broken.json").write_text("{")

        assert store.list_presets() == [
            PresetInfo(name="a-rehearsal", description="(no description)"),
            PresetInfo(name="b-show", description="Sunday service"),
            PresetInfo(name="c-broken", description="(cannot open)"),
        ]

    def test_list_empty(self, store):
        assert store.list_presets() == []

    def test_delete(self, store, state):
        store.save("sunday", state)
        assert store.delete("sunday") is True
        assert not store.exists("sunday")
        assert store.delete("sunday") is False
