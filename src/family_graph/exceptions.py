from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class GraphIntegrityError(Exception):
    """Raised when a candidate collection would break a structural invariant.

    Scenarios:
    - Duplicate person ids
    - A person listed as their own parent
    - A parent/child cycle

    The store is left untouched whenever this is raised.
    """

    reason: str
    person_ids: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        if self.person_ids:
            return f"{self.reason} ({', '.join(self.person_ids)})"
        return self.reason


@dataclass
class SnapshotImportError(Exception):
    """Raised when a shared snapshot cannot be decoded or validated."""

    reason: str

    def __str__(self) -> str:
        return self.reason
