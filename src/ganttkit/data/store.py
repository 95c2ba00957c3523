"""
Opaque key-value stores the snapshot is persisted into.
"""
import abc
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

from ganttkit.recovery import FileOperationError, StoreWriteError
from ganttkit.logs import get_logger
from .io import atomic_write_text

log = get_logger("data.store")

_UNSAFE_KEY_CHARS = re.compile(r'[^A-Za-z0-9_.-]')

class KeyValueStore(abc.ABC):
    """
    Minimal durable store contract: string keys mapped to string values.

    Implementations raise FileOperationError on read failures and
    StoreWriteError on write failures; callers decide whether those are fatal.
    """

    @abc.abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""
        pass

    @abc.abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abc.abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key, returns False when it was not present."""
        pass

    @abc.abstractmethod
    def keys(self) -> List[str]:
        pass

class MemoryStore(KeyValueStore):
    """Dict-backed store, useful for embedding and tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> List[str]:
        return sorted(self._data)

class FileStore(KeyValueStore):
    """One ``<key>.json`` file per key inside a data directory."""

    SUFFIX = ".json"

    def __init__(self, basepath: Union[Path, str]):
        self.basepath = Path(basepath)

    def path_for(self, key: str) -> Path:
        return self.basepath / f"{_UNSAFE_KEY_CHARS.sub('_', key)}{self.SUFFIX}"

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding='utf-8')
        except (IOError, OSError) as e:
            raise FileOperationError(f"Failed to read key {key!r} from {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            atomic_write_text(self.path_for(key), value, create_dirs=True)
        except FileOperationError as e:
            raise StoreWriteError(f"Failed to write key {key!r}: {e}") from e

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise FileOperationError(f"Failed to delete key {key!r}: {e}") from e
        return True

    def keys(self) -> List[str]:
        if not self.basepath.exists():
            return []
        return sorted(p.stem for p in self.basepath.glob(f"*{self.SUFFIX}"))
