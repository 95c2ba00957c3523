"""
SnapshotStore - Persistence adapter between the planner snapshot and a key-value store.

This module hydrates the snapshot on startup (restoring date values from their
ISO strings), writes it back after every committed transition, and keeps the
team roster under its own key. Nothing in here is allowed to take the
in-memory session down: read problems fall back to an empty snapshot and write
problems are logged and reported as False.
"""
import json
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from ganttkit.config import Settings, load_settings
from ganttkit.logs import get_logger
from ganttkit.models import GanttState, User
from ganttkit.recovery import CorruptionError, FileOperationError
from .store import FileStore, KeyValueStore
from .validate import snapshot_errors

log = get_logger("data")

DEFAULT_STATE_KEY = "ganttState"
DEFAULT_TEAM_KEY = "gantt-team-members"

_users_adapter = TypeAdapter(List[User])

def serialize_snapshot(state: GanttState) -> Dict[str, Any]:
    """Snapshot as a JSON-ready dict; dates degrade to ISO-8601 strings."""
    return state.model_dump(mode="json", by_alias=True)

def deserialize_snapshot(document: Any) -> GanttState:
    """
    Rebuild a snapshot from a persisted document.

    Raises:
        CorruptionError: if the document is not a snapshot.
    """
    if not isinstance(document, dict):
        raise CorruptionError(f"Snapshot must be a JSON object, got {type(document).__name__}")
    errors = snapshot_errors(document)
    if errors:
        raise CorruptionError(f"Snapshot failed schema validation: {errors[0]}")
    try:
        return GanttState.model_validate(document)
    except ValidationError as e:
        raise CorruptionError(f"Snapshot failed model validation: {e}") from e

class SnapshotStore:
    def __init__(self, store: KeyValueStore, key: str = DEFAULT_STATE_KEY, team_key: str = DEFAULT_TEAM_KEY):
        self.store = store
        self.key = key
        self.team_key = team_key

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SnapshotStore":
        settings = settings or load_settings()
        return cls(FileStore(settings.data_dir), key=settings.state_key, team_key=settings.team_key)

    def _read(self, key: str) -> Optional[str]:
        try:
            return self.store.get(key)
        except FileOperationError as e:
            log.warning(f"Could not read {key!r} from store: {e}")
            return None

    def load(self) -> GanttState:
        """Hydrate the snapshot, or return an empty default when absent or malformed."""
        state = self._load_snapshot()
        users = self._load_team()
        if users is not None:
            state = state.model_copy(update={"users": users})
        return state

    def _load_snapshot(self) -> GanttState:
        raw = self._read(self.key)
        if raw is None:
            log.info(f"No saved snapshot under {self.key!r}, starting empty")
            return GanttState()
        try:
            state = deserialize_snapshot(json.loads(raw))
        except json.JSONDecodeError as e:
            log.warning(f"Failed to parse saved snapshot: {e}")
            return GanttState()
        except CorruptionError as e:
            log.warning(f"Ignoring malformed saved snapshot: {e}")
            return GanttState()
        log.info(f"Loaded snapshot: {len(state.projects)} projects, {len(state.tasks)} tasks")
        return state

    def _load_team(self) -> Optional[List[User]]:
        raw = self._read(self.team_key)
        if raw is None:
            return None
        try:
            users = _users_adapter.validate_json(raw)
        except ValidationError as e:
            log.warning(f"Ignoring malformed team roster: {e.error_count()} error(s)")
            return None
        return users or None

    def save(self, state: GanttState, include_team: bool = False) -> bool:
        """Write the snapshot (and optionally the roster); never raises."""
        saved = self._write(self.key, json.dumps(serialize_snapshot(state)))
        if include_team:
            saved = self._write(self.team_key, _users_adapter.dump_json(state.users, by_alias=True).decode()) and saved
        return saved

    def _write(self, key: str, value: str) -> bool:
        try:
            self.store.set(key, value)
            return True
        except Exception as e:
            # Durability is lost for this write; the in-memory snapshot stays authoritative
            log.error(f"Failed to persist {key!r}: {e}")
            return False

    def clear(self) -> None:
        for key in (self.key, self.team_key):
            try:
                self.store.delete(key)
            except FileOperationError as e:
                log.warning(f"Could not delete {key!r}: {e}")
