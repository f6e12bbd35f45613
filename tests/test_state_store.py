"""Tests for target state storage."""

import json

import pytest

from reachwatch.monitor.models import TargetState
from reachwatch.monitor.state_store import FileStateStore, MemoryStateStore, StateStore


class TestMemoryStateStore:
    def test_unknown_key_is_first_poll(self):
        assert MemoryStateStore().load("ping:example.com") is None

    def test_save_and_load(self):
        store = MemoryStateStore()
        state = TargetState(previous_status=False, consecutive_failures=4)

        store.save("a", state)

        assert store.load("a") == state
        assert store.load("b") is None


class TestFileStateStore:
    """Tests for the JSON file backed store."""

    def test_missing_file_is_empty(self, tmp_path):
        store = FileStateStore(tmp_path / "state.json")
        assert store.load("default") is None

    def test_state_survives_new_instance(self, tmp_path):
        path = tmp_path / "nested" / "state.json"
        FileStateStore(path).save("default", TargetState(True, 1))

        assert FileStateStore(path).load("default") == TargetState(True, 1)

    def test_keys_stored_independently(self, tmp_path):
        store = FileStateStore(tmp_path / "state.json")
        store.save("one", TargetState(True, 0))
        store.save("two", TargetState(False, 3))

        assert store.load("one") == TargetState(True, 0)
        assert store.load("two") == TargetState(False, 3)

    def test_file_uses_camel_case_keys(self, tmp_path):
        path = tmp_path / "state.json"
        FileStateStore(path).save("default", TargetState(False, 2))

        data = json.loads(path.read_text())
        assert data == {"default": {"previousStatus": False, "consecutiveFailures": 2}}

    def test_no_temp_files_left_behind(self, tmp_path):
        store = FileStateStore(tmp_path / "state.json")
        store.save("default", TargetState(True, 0))
        store.save("default", TargetState(True, 0))

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    @pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
    def test_unreadable_file_treated_as_empty(self, tmp_path, content):
        path = tmp_path / "state.json"
        path.write_text(content)
        store = FileStateStore(path)

        assert store.load("default") is None

        store.save("default", TargetState(True, 0))
        assert store.load("default") == TargetState(True, 0)


def test_base_store_is_abstract():
    with pytest.raises(NotImplementedError):
        StateStore().load("x")
    with pytest.raises(NotImplementedError):
        StateStore().save("x", TargetState())
