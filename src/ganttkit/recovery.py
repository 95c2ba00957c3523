class GanttError(Exception):
    """Base exception for all ganttkit errors."""
    pass

class RecoverableError(GanttError):
    """An error that can be recovered from without losing the in-memory session."""
    pass

class FatalError(GanttError):
    """An error that requires application termination or major intervention."""
    pass

class CorruptionError(FatalError):
    """Corrupted Data Error - from syntax errors in data formats, to just unknown data"""
    pass

class FileOperationError(RecoverableError):
    """File operation failed but can be retried."""
    pass

class StoreWriteError(FileOperationError):
    """Writing a key to the durable store failed (disk full, permissions, quota)."""
    pass

class ActionParseError(RecoverableError):
    """A raw action message could not be parsed into a known action."""
    pass
