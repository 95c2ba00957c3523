VERSION = "0.3.0"
SNAPSHOT_SCHEMA_VERSION = "1.0.0"
