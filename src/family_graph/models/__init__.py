"""Value types for the family graph."""

from .labels import display_name, relationship_name
from .person import (
    MAX_YEAR,
    MIN_YEAR,
    LifeEvent,
    PartialDate,
    Person,
    new_id,
    now_ms,
)
from .snapshot import CURRENT_DATA_VERSION, Snapshot

__all__ = [
    "CURRENT_DATA_VERSION",
    "LifeEvent",
    "MAX_YEAR",
    "MIN_YEAR",
    "PartialDate",
    "Person",
    "Snapshot",
    "display_name",
    "new_id",
    "now_ms",
    "relationship_name",
]
