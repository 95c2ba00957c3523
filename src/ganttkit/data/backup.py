import shutil
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, List, Optional, Union
from .io import atomic_write, DATA_JSON, detect_format, load_json_file, load_yaml_file, DATA_YAML
from .core import serialize_snapshot, deserialize_snapshot
from ganttkit.models import GanttState
from ganttkit.recovery import CorruptionError
from ganttkit.version import VERSION, SNAPSHOT_SCHEMA_VERSION
from ganttkit.logs import get_logger

log = get_logger('data.backup')

SNAPSHOT_FILE = "snapshot.json"
METADATA_FILE = "backups.json"

class BackupManager:
    def __init__(self, backup_dir: Union[Path, str]):
        self.backup_dir = Path(backup_dir)

    def _generate_backup_id(self, custom_name: Optional[str] = None) -> str:
        """Generate a backup ID with timestamp and optional custom name"""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        if custom_name:
            # Sanitize custom name for filesystem
            safe_name = "".join(c for c in custom_name if c.isalnum() or c in ('-', '_')).strip()
            return f"{timestamp}_{safe_name}"
        return timestamp

    def _create_backup_metadata(self, backup_id: str, state: GanttState,
                              custom_name: Optional[str] = None) -> Dict[str, Any]:
        """Create metadata for a backup"""
        return {
            "backup_id": backup_id,
            "created_at": datetime.now().isoformat(),
            "custom_name": custom_name,
            "counts": {
                "projects": len(state.projects),
                "sections": len(state.sections),
                "tasks": len(state.tasks),
                "links": len(state.links),
                "users": len(state.users),
            },
            "app_version": VERSION,
            "schema_version": SNAPSHOT_SCHEMA_VERSION,
        }

    def create_backup(self, state: GanttState, backup_name: Optional[str] = None) -> Path:
        """Write the snapshot and its metadata into a new backup folder"""
        backup_id = self._generate_backup_id(backup_name)
        backup_path = self.backup_dir / backup_id

        atomic_write(DATA_JSON, backup_path / SNAPSHOT_FILE, serialize_snapshot(state), create_dirs=True)
        metadata = self._create_backup_metadata(backup_id, state, backup_name)
        atomic_write(DATA_JSON, backup_path / METADATA_FILE, metadata, create_dirs=True)

        log.info(f"Created backup {backup_id} ({len(state.tasks)} tasks)")
        return backup_path

    def list_backups(self) -> List[Dict[str, Any]]:
        """List all available backups, newest first"""
        backups = []

        if not self.backup_dir.exists():
            return backups

        for backup_path in self.backup_dir.iterdir():
            if not backup_path.is_dir():
                continue
            try:
                metadata = load_json_file(backup_path / METADATA_FILE)
            except CorruptionError:
                metadata = None
            if metadata is None:
                # If metadata is missing or corrupted, create basic info from directory
                metadata = {
                    "backup_id": backup_path.name,
                    "created_at": "unknown",
                    "status": "metadata_corrupted",
                }
            metadata['backup_folder'] = str(backup_path)
            backups.append(metadata)

        backups.sort(key=lambda x: x.get("created_at", ""), reverse=True)
        return backups

    def get_backup_info(self, backup_id: str) -> Optional[Dict[str, Any]]:
        """Get detailed information about a specific backup"""
        metadata_file = self.backup_dir / backup_id / METADATA_FILE
        try:
            return load_json_file(metadata_file)
        except CorruptionError:
            return None

    def load_backup(self, backup_id: str) -> GanttState:
        """Read the snapshot stored in a backup"""
        snapshot_file = self.backup_dir / backup_id / SNAPSHOT_FILE
        document = load_json_file(snapshot_file)
        if document is None:
            raise FileNotFoundError(f"Backup {backup_id} not found")
        return deserialize_snapshot(document)

    def restore_backup(self, backup_id: str, current: Optional[GanttState] = None) -> GanttState:
        """
        Return the snapshot held by a backup.

        When the current snapshot is given a safety backup of it is taken first.
        """
        restored = self.load_backup(backup_id)
        if current is not None:
            self.create_backup(current, f"pre_restore_{backup_id}")
        log.info(f"Restored backup {backup_id}")
        return restored

    def delete_backup(self, backup_id: str) -> bool:
        """Delete a specific backup"""
        backup_path = self.backup_dir / backup_id
        if backup_path.exists():
            shutil.rmtree(backup_path)
            return True
        return False

    def cleanup_old_backups(self, keep_count: int = 10) -> int:
        """Clean up old backups, keeping only the most recent ones"""
        deleted_count = 0
        for backup in self.list_backups()[keep_count:]:
            if self.delete_backup(backup["backup_id"]):
                deleted_count += 1
        return deleted_count

def export_snapshot(state: GanttState, file_path: Union[Path, str]) -> Path:
    """Write the snapshot to a portable JSON or YAML file (picked by extension)."""
    file_path = Path(file_path)
    atomic_write(detect_format(file_path), file_path, serialize_snapshot(state), create_dirs=True)
    log.info(f"Exported snapshot to {file_path}")
    return file_path

def import_snapshot(file_path: Union[Path, str]) -> GanttState:
    """
    Read a snapshot written by export_snapshot.

    Raises:
        FileNotFoundError: if the file does not exist.
        CorruptionError: if the file is not a valid snapshot.
    """
    file_path = Path(file_path)
    if detect_format(file_path) == DATA_YAML:
        document = load_yaml_file(file_path)
    else:
        document = load_json_file(file_path)
    if document is None:
        raise FileNotFoundError(f"Import file {file_path} does not exist")
    return deserialize_snapshot(document)
