"""Snapshot repositories - the persistence adapter behind the store.

A repository keeps exactly one snapshot under a fixed key. Loading an
empty or unreadable repository yields a fresh snapshot seeded with a
single generation-0 root person.
"""
from __future__ import annotations

import os
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

import structlog
from pydantic import ValidationError

from ..graph.integrity import structural_issues
from ..models.person import new_id, now_ms
from ..models.snapshot import Snapshot

logger = structlog.get_logger(__name__)

STORAGE_KEY = "family-history-data"


class SnapshotRepository(ABC):
    """Abstract base class for snapshot storage."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock

    @abstractmethod
    def _read(self) -> str | None:
        """Raw stored text, or None when nothing is stored."""
        ...

    @abstractmethod
    def _write(self, text: str) -> None:
        ...

    def load(self, id_factory: Callable[[], str] = new_id) -> Snapshot:
        """Load the last saved snapshot, or a freshly seeded one.

        Stored data that fails validation, or whose parent links break the
        graph's structure (duplicate ids, self-parenting, cycles), is
        discarded in favour of a seeded snapshot whose root id comes from
        ``id_factory``.
        """
        try:
            raw = self._read()
        except OSError as e:
            logger.warning("repository.read_failed", error=str(e))
            raw = None

        if raw is None:
            return self._seed(id_factory)

        try:
            snapshot = Snapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("repository.load_failed", error=str(e))
            return self._seed(id_factory)

        issues = structural_issues(snapshot.people)
        if issues:
            logger.warning(
                "repository.load_failed",
                error=issues[0].message,
                person_ids=issues[0].person_ids,
            )
            return self._seed(id_factory)

        if not snapshot.people:
            return self._seed(id_factory)

        return snapshot

    def _seed(self, id_factory: Callable[[], str]) -> Snapshot:
        return Snapshot.seeded(now=self._clock(), root_id=id_factory())

    def save(self, snapshot: Snapshot) -> Snapshot:
        """Persist ``snapshot`` under the fixed key, stamping ``updated_at``."""
        stamped = snapshot.stamped(self._clock())
        self._write(stamped.to_json())
        logger.debug("repository.saved", people=len(stamped.people))
        return stamped


class InMemorySnapshotRepository(SnapshotRepository):
    """Key-value repository held in process memory; used for tests."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        super().__init__(clock)
        self._data: dict[str, str] = {}

    def _read(self) -> str | None:
        return self._data.get(STORAGE_KEY)

    def _write(self, text: str) -> None:
        self._data[STORAGE_KEY] = text


class JsonFileSnapshotRepository(SnapshotRepository):
    """JSON file repository: ``<directory>/family-history-data.json``."""

    def __init__(self, directory: str | Path, clock: Callable[[], int] = now_ms) -> None:
        super().__init__(clock)
        self.directory = Path(directory)
        self.path = self.directory / f"{STORAGE_KEY}.json"

    def _read(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def _write(self, text: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        # Temp file in the same directory, fsync, then rename over the target
        fd, tmp_path = tempfile.mkstemp(prefix=self.path.name + ".", dir=str(self.directory))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
