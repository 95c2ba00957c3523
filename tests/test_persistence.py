"""Tests for the key-value stores, snapshot persistence and settings."""

import json
import pytest
from datetime import datetime
from pydantic_settings import BaseSettings

from conftest import FailingStore, make_task
from ganttkit.config import Settings, load_settings
from ganttkit.data import FileStore, MemoryStore, SnapshotStore, serialize_snapshot, deserialize_snapshot
from ganttkit.data.io import atomic_write_text, load_json_file, load_yaml_file
from ganttkit.data.validate import snapshot_errors, is_valid_snapshot
from ganttkit.models import GanttState, Project, User, ViewType
from ganttkit.recovery import CorruptionError


class TestFileStore:
    """Test the file-backed key-value store."""

    def test_round_trip(self, tmp_path):
        store = FileStore(tmp_path / "data")
        assert store.get("ganttState") is None
        store.set("ganttState", '{"a": 1}')
        assert store.get("ganttState") == '{"a": 1}'
        assert (tmp_path / "data" / "ganttState.json").exists()
        assert store.keys() == ["ganttState"]

    def test_unsafe_key_characters(self, tmp_path):
        store = FileStore(tmp_path)
        store.set("../escape/me", "x")
        assert store.path_for("../escape/me").parent == tmp_path
        assert store.get("../escape/me") == "x"

    def test_delete(self, tmp_path):
        store = FileStore(tmp_path)
        store.set("k", "v")
        assert store.delete("k") is True
        assert store.delete("k") is False
        assert store.get("k") is None

    def test_no_temp_files_left(self, tmp_path):
        """Atomic writes leave only the target file behind."""
        atomic_write_text(tmp_path / "out.json", "{}")
        assert [p.name for p in tmp_path.iterdir()] == ["out.json"]


class TestLoaders:
    """Test raw file loaders."""

    def test_missing_file(self, tmp_path):
        assert load_json_file(tmp_path / "nope.json") is None
        assert load_yaml_file(tmp_path / "nope.yml") is None

    def test_corrupt_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(CorruptionError):
            load_json_file(path)

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(CorruptionError):
            load_yaml_file(path)


class TestSnapshotSerialization:
    """Test snapshot documents and their schema."""

    def test_dates_become_iso_strings(self, planned_state):
        document = serialize_snapshot(planned_state)
        task = document["tasks"][0]
        assert task["start"] == "2024-01-01T00:00:00"
        assert task["projectId"] == "p1"
        assert document["currentView"] == "gantt"
        assert snapshot_errors(document) == []
        assert is_valid_snapshot(document)

    def test_deserialize_restores_dates(self, planned_state):
        restored = deserialize_snapshot(json.loads(json.dumps(serialize_snapshot(planned_state))))
        assert restored == planned_state
        assert isinstance(restored.tasks[0].start, datetime)
        assert isinstance(restored.selected_date, datetime)

    def test_utc_suffixed_dates_load_naive(self):
        document = {
            "tasks": [{"id": "t1", "name": "T", "start": "2024-01-01T00:00:00.000Z", "end": "2024-01-05T00:00:00.000Z"}],
            "selectedDate": "2024-01-01T00:00:00.000Z",
        }
        restored = deserialize_snapshot(document)
        assert restored.tasks[0].start == datetime(2024, 1, 1)
        assert restored.selected_date.tzinfo is None
        assert serialize_snapshot(restored)["tasks"][0]["end"] == "2024-01-05T00:00:00"

    def test_schema_rejects_wrong_shape(self):
        document = {"tasks": "not a list"}
        assert snapshot_errors(document)
        assert not is_valid_snapshot(document)
        with pytest.raises(CorruptionError):
            deserialize_snapshot(document)

    def test_non_dict_rejected(self):
        with pytest.raises(CorruptionError):
            deserialize_snapshot(["tasks"])


class TestSnapshotStore:
    """Test hydrate/persist behaviour."""

    def test_missing_key_gives_default(self, memory_store):
        state = SnapshotStore(memory_store).load()
        assert state.tasks == []
        assert state.zoom_level == 50
        assert state.current_view == ViewType.GANTT

    def test_save_then_load(self, memory_store, planned_state):
        snapshots = SnapshotStore(memory_store)
        assert snapshots.save(planned_state) is True
        assert "ganttState" in memory_store.keys()
        assert snapshots.load() == planned_state

    def test_malformed_json_falls_back(self):
        store = MemoryStore({"ganttState": "{definitely not json"})
        state = SnapshotStore(store).load()
        assert state.tasks == [] and state.projects == []

    def test_schema_violation_falls_back(self):
        store = MemoryStore({"ganttState": json.dumps({"tasks": [{"id": "t1"}]})})
        assert SnapshotStore(store).load().tasks == []

    def test_write_failure_reports_false(self, planned_state):
        assert SnapshotStore(FailingStore()).save(planned_state) is False

    def test_team_key(self, memory_store, empty_state):
        snapshots = SnapshotStore(memory_store)
        state = empty_state.model_copy(update={"users": [User(id="u1", name="Ada", color="#000")]})
        snapshots.save(state, include_team=True)
        roster = json.loads(memory_store.get("gantt-team-members"))
        assert roster == [{"id": "u1", "name": "Ada", "color": "#000", "avatar": None, "role": None}]

    def test_team_key_wins_over_snapshot_users(self, memory_store, empty_state):
        snapshots = SnapshotStore(memory_store)
        snapshots.save(empty_state.model_copy(update={"users": [User(id="old", name="Old", color="#000")]}))
        memory_store.set("gantt-team-members", json.dumps([{"id": "u9", "name": "New", "color": "#fff"}]))
        assert [u.id for u in snapshots.load().users] == ["u9"]

    def test_malformed_team_is_ignored(self, memory_store, empty_state):
        snapshots = SnapshotStore(memory_store)
        snapshots.save(empty_state.model_copy(update={"users": [User(id="u1", name="Ada", color="#000")]}))
        memory_store.set("gantt-team-members", "[{]")
        assert [u.id for u in snapshots.load().users] == ["u1"]

    def test_clear(self, memory_store, planned_state):
        snapshots = SnapshotStore(memory_store)
        snapshots.save(planned_state)
        snapshots.clear()
        assert memory_store.keys() == []

    def test_custom_keys(self, memory_store):
        snapshots = SnapshotStore(memory_store, key="other", team_key="crew")
        state = GanttState(projects=[Project(id="p1", name="P", color="#000")])
        snapshots.save(state)
        assert memory_store.keys() == ["other"]

    def test_file_backed_round_trip(self, tmp_path, planned_state):
        snapshots = SnapshotStore(FileStore(tmp_path))
        snapshots.save(planned_state)
        assert SnapshotStore(FileStore(tmp_path)).load() == planned_state

    def test_from_settings(self, tmp_path):
        snapshots = SnapshotStore.from_settings(Settings(data_dir=tmp_path, state_key="plan"))
        snapshots.save(GanttState(tasks=[make_task()]))
        assert (tmp_path / "plan.json").exists()


class TestSettings:
    """Test settings resolution."""

    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GANTTKIT_DATA_DIR", raising=False)
        settings = load_settings(tmp_path / "missing.yml")
        assert settings.state_key == "ganttState"
        assert settings.team_key == "gantt-team-members"
        assert settings.backup_keep == 10

    def test_file_then_env(self, tmp_path, monkeypatch):
        config = tmp_path / "config.yml"
        config.write_text(f"data_dir: {tmp_path / 'from-file'}\nbackup_keep: 3\n")
        monkeypatch.setenv("GANTTKIT_DATA_DIR", str(tmp_path / "from-env"))
        settings = load_settings(config)
        assert settings.data_dir == tmp_path / "from-env"
        assert settings.backup_keep == 3

    def test_is_base_settings(self):
        assert issubclass(Settings, BaseSettings)
        assert Settings.model_config["env_prefix"] == "GANTTKIT_"

    def test_invalid_file_value_falls_back(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GANTTKIT_BACKUP_KEEP", raising=False)
        monkeypatch.delenv("GANTTKIT_DATA_DIR", raising=False)
        config = tmp_path / "config.yml"
        config.write_text(f"data_dir: {tmp_path / 'mydata'}\nbackup_keep: 0\n")
        settings = load_settings(config)
        assert settings.backup_keep == 10
        assert settings.data_dir == tmp_path / "mydata"

    def test_invalid_env_keeps_other_values(self, tmp_path, monkeypatch):
        """Only the bad field falls back; the configured data dir is kept."""
        monkeypatch.delenv("GANTTKIT_DATA_DIR", raising=False)
        monkeypatch.setenv("GANTTKIT_BACKUP_KEEP", "ten")
        config = tmp_path / "config.yml"
        config.write_text(f"data_dir: {tmp_path / 'mydata'}\nstate_key: plan\n")
        settings = load_settings(config)
        assert settings.data_dir == tmp_path / "mydata"
        assert settings.state_key == "plan"
        assert settings.backup_keep == 10

    def test_broken_yaml_ignored(self, tmp_path):
        config = tmp_path / "config.yml"
        config.write_text("data_dir: [unclosed\n")
        assert load_settings(config).state_key == "ganttState"
