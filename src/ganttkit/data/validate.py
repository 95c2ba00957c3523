import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from jsonschema import Draft202012Validator, SchemaError

from ganttkit.logs import get_logger
from ganttkit.models import GanttState
from ganttkit.version import SNAPSHOT_SCHEMA_VERSION

log = get_logger("data.validate")

JSON_SCHEMA_DIALECT = "https://json-schema.org/draft/2020-12/schema"

@lru_cache(maxsize=1)
def snapshot_schema() -> Dict[str, Any]:
    """JSON schema of the persisted snapshot document, derived from GanttState."""
    schema = GanttState.model_json_schema(by_alias=True)
    schema["$schema"] = JSON_SCHEMA_DIALECT
    schema["$comment"] = f"ganttkit snapshot schema v{SNAPSHOT_SCHEMA_VERSION}"
    return schema

def load_schema_file(schema_path: Union[Path, str]) -> Optional[Dict[str, Any]]:
    """
    Load a schema written by schema_generator.py.

    Returns None if the file does not exist or is not valid JSON.
    """
    schema_path = Path(schema_path)
    if not schema_path.exists():
        log.error(f"Schema file not found: {schema_path}")
        return None
    try:
        with open(schema_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError:
        log.error(f"Schema file '{schema_path}' is not valid JSON")
        return None

def snapshot_errors(document: Any, schema: Optional[Dict[str, Any]] = None) -> List[str]:
    """
    Validate a raw persisted document against the snapshot schema.

    Args:
        document: The parsed JSON document (usually a dict).
        schema: Schema to check against; defaults to snapshot_schema().

    Returns:
        Human readable error messages, empty when the document is valid.
    """
    schema = schema or snapshot_schema()
    try:
        validator = Draft202012Validator(schema)
        errors = sorted(validator.iter_errors(document), key=lambda e: list(e.absolute_path))
    except SchemaError as e:
        log.error(f"Snapshot schema itself is invalid. Error: {e.message}")
        return [f"invalid schema: {e.message}"]

    messages = []
    for error in errors:
        location = "/".join(str(p) for p in error.absolute_path) or "<root>"
        messages.append(f"{location}: {error.message}")
    return messages

def is_valid_snapshot(document: Any, schema: Optional[Dict[str, Any]] = None) -> bool:
    errors = snapshot_errors(document, schema)
    if errors:
        log.warning(f"Snapshot document FAILED validation with {len(errors)} error(s)")
        for message in errors[:10]:
            log.warning(f"Validation Error: {message}")
        return False
    log.debug("Snapshot document is VALID")
    return True
