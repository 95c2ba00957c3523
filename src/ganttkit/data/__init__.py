"""
Data management submodule: key-value stores, snapshot persistence and backups.
"""

from .store import KeyValueStore, MemoryStore, FileStore
from .core import SnapshotStore, serialize_snapshot, deserialize_snapshot
from .backup import BackupManager, export_snapshot, import_snapshot

__all__ = [
    'KeyValueStore',
    'MemoryStore',
    'FileStore',
    'SnapshotStore',
    'serialize_snapshot',
    'deserialize_snapshot',
    'BackupManager',
    'export_snapshot',
    'import_snapshot',
]
