"""Snapshot schema versioning.

Only one schema version exists today, so ``migrate`` just stamps the
current version. It is the single place future schema changes hook into.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from ..models.snapshot import CURRENT_DATA_VERSION, Snapshot

logger = structlog.get_logger(__name__)


def _major(version: str) -> int | None:
    try:
        return int(str(version).split(".")[0])
    except ValueError:
        return None


def migrate(raw: dict[str, Any]) -> dict[str, Any]:
    """Bring raw snapshot data up to CURRENT_DATA_VERSION."""
    version = raw.get("version")
    if version and version != CURRENT_DATA_VERSION:
        # Future migration steps go here, keyed on ``version``
        logger.info("snapshot.migrated", from_version=version, to_version=CURRENT_DATA_VERSION)
    return {**raw, "version": CURRENT_DATA_VERSION}


def is_compatible_version(version: str) -> bool:
    """Major versions must match for compatibility."""
    major = _major(version)
    return major is not None and major == _major(CURRENT_DATA_VERSION)


@dataclass(frozen=True)
class VersionInfo:
    current: str
    data: str
    is_compatible: bool
    needs_migration: bool


def version_info(snapshot: Snapshot) -> VersionInfo:
    return VersionInfo(
        current=CURRENT_DATA_VERSION,
        data=snapshot.version,
        is_compatible=is_compatible_version(snapshot.version),
        needs_migration=snapshot.version != CURRENT_DATA_VERSION,
    )
