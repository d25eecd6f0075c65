"""Snapshot - the full serializable state of a family graph."""
from __future__ import annotations

from pydantic import BaseModel, Field

from .person import RECORD_CONFIG, Person, new_id, now_ms

# Current snapshot schema version
CURRENT_DATA_VERSION = "1.0.0"


class Snapshot(BaseModel):
    """All people plus bookkeeping, as persisted and shared.

    ``root_id`` names the "Self" person explicitly instead of guessing it
    from the shape of the graph.
    """

    model_config = RECORD_CONFIG

    people: tuple[Person, ...] = ()
    version: str = CURRENT_DATA_VERSION
    root_id: str | None = None
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)

    @classmethod
    def seeded(cls, now: int | None = None, root_id: str | None = None) -> Snapshot:
        """A fresh snapshot holding a single generation-0 root person."""
        now = now_ms() if now is None else now
        root = Person(id=root_id or new_id(), generation=0, created_at=now, updated_at=now)
        return cls(people=(root,), root_id=root.id, created_at=now, updated_at=now)

    def stamped(self, updated_at: int) -> Snapshot:
        return self.model_copy(update={"updated_at": updated_at})

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
