#!/usr/bin/env python3
"""
JSON Schema Generator Script

Generates JSON Schemas for the persisted snapshot from the Pydantic models in
ganttkit.models.
"""

import json
import inspect
import argparse
from pathlib import Path
from pydantic import BaseModel

from ganttkit import models as ganttkit_models
from ganttkit.version import SNAPSHOT_SCHEMA_VERSION

DEFAULT_VERSION = SNAPSHOT_SCHEMA_VERSION


class SchemaGenerator:
    def __init__(self, base_version=None, schemas_dir=None):
        self.base_version = base_version or DEFAULT_VERSION
        self.schemas_dir = Path(schemas_dir or "schemas")

    def generate_schema_from_pydantic_model(self, cls):
        """Generate JSON schema from Pydantic model."""
        if not (inspect.isclass(cls) and issubclass(cls, BaseModel)):
            raise ValueError(f"{cls.__name__} is not a Pydantic BaseModel")

        # Persisted documents use the camelCase aliases
        schema = cls.model_json_schema(by_alias=True)
        schema["$schema"] = "https://json-schema.org/draft/2020-12/schema"
        return schema

    def find_schema_classes(self, models_module):
        """Find all Pydantic models marked with _schema_scope."""
        schema_classes = []
        for _, member in inspect.getmembers(models_module, inspect.isclass):
            if getattr(member, '__module__', None) != models_module.__name__:
                continue
            if issubclass(member, BaseModel) and self._private_default(member, '_schema_scope'):
                schema_classes.append(member)
        return schema_classes

    @staticmethod
    def _private_default(cls, name):
        # Pydantic keeps underscore attributes as private attributes with a .default
        attr = getattr(cls, name, None)
        return getattr(attr, 'default', attr)

    def generate_schemas(self, version=None, models_module=ganttkit_models):
        """Generate all schemas, returns the written paths."""
        version_to_use = version or self.base_version
        schema_classes = self.find_schema_classes(models_module)
        if not schema_classes:
            print("No Pydantic models with _schema_scope found")
            return []

        version_dir = self.schemas_dir / f"v{version_to_use}"
        version_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for cls in schema_classes:
            scope = self._private_default(cls, '_schema_scope')
            filename = self._private_default(cls, '_schema_filename')
            if not scope or not filename:
                print(f"Skipping {cls.__name__}: missing _schema_scope or _schema_filename")
                continue

            schema_path = version_dir / f"{scope}_{filename}.schema.json"
            with open(schema_path, "w", encoding="utf-8") as f:
                json.dump(self.generate_schema_from_pydantic_model(cls), f, indent=2, ensure_ascii=False)
            print(f"Generated: {schema_path}")
            written.append(schema_path)

        print(f"Schema generation complete! Files saved to {version_dir}")
        if version_to_use != DEFAULT_VERSION:
            print(f"\n⚠️  IMPORTANT: If this is a new schema version, remember to update")
            print(f"   SNAPSHOT_SCHEMA_VERSION in src/ganttkit/version.py to '{version_to_use}'")
        return written


def main():
    parser = argparse.ArgumentParser(description="Generate JSON schemas from Pydantic models")
    parser.add_argument("--version", "-v", help="Schema version (default: SNAPSHOT_SCHEMA_VERSION from version.py)")
    parser.add_argument("--out", "-o", default="schemas", help="Output directory")
    args = parser.parse_args()

    generator = SchemaGenerator(schemas_dir=args.out)
    print(f"Generating schemas with version: {args.version or generator.base_version}")

    try:
        generator.generate_schemas(version=args.version)
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    exit(main())
