"""Snapshot persistence, sharing tokens and schema versioning."""

from .repository import (
    STORAGE_KEY,
    InMemorySnapshotRepository,
    JsonFileSnapshotRepository,
    SnapshotRepository,
)
from .sharing import (
    decode_token,
    export_token,
    export_url,
    parse_snapshot_json,
    sanitize_for_export,
    snapshot_from_url,
)
from .versioning import VersionInfo, is_compatible_version, migrate, version_info

__all__ = [
    "InMemorySnapshotRepository",
    "JsonFileSnapshotRepository",
    "STORAGE_KEY",
    "SnapshotRepository",
    "VersionInfo",
    "decode_token",
    "export_token",
    "export_url",
    "is_compatible_version",
    "migrate",
    "parse_snapshot_json",
    "sanitize_for_export",
    "snapshot_from_url",
    "version_info",
]
