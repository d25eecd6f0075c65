"""Person records and the life-event value types they carry.

Records are frozen pydantic models. Mutations never edit a record in place;
they build a replacement (see ``Person.patched``) so that any collection a
reader already holds stays consistent.
"""
from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from uuid_utils import uuid7 as _uuid7

MIN_YEAR = 1800
MAX_YEAR = 2024

# Fields owned by the store; patches may not touch them.
PROTECTED_FIELDS = frozenset({"id", "created_at", "updated_at"})

RECORD_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
)


def new_id() -> str:
    """Generate an opaque, time-ordered person identifier."""
    return str(_uuid7())


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(datetime.now(UTC).timestamp() * 1000)


def _parse_date_part(value: int | str | None) -> int | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        return int(value)
    return int(value)


class PartialDate(BaseModel):
    """A date where year, month and day are each independently optional.

    Ranges are checked per field only; day-of-month overflow (e.g. 31 Feb)
    is deliberately not rejected.
    """

    model_config = ConfigDict(frozen=True)

    year: int | None = Field(default=None, ge=MIN_YEAR, le=MAX_YEAR)
    month: int | None = Field(default=None, ge=1, le=12)
    day: int | None = Field(default=None, ge=1, le=31)

    @property
    def precision(self) -> str:
        if self.day and self.month and self.year:
            return "exact"
        elif self.month and self.year:
            return "month"
        elif self.year:
            return "year"
        return "unknown"

    def __str__(self) -> str:
        parts = []
        if self.year:
            parts.append(f"{self.year:04d}")
        if self.month:
            parts.append(f"{self.month:02d}")
        if self.day:
            parts.append(f"{self.day:02d}")
        return "-".join(parts) or "Unknown"


class LifeEvent(BaseModel):
    """A birth, death, marriage, divorce or naturalization occurrence.

    Only marriage and divorce events may reference a partner.
    """

    model_config = RECORD_CONFIG

    date: PartialDate | None = None
    country: str | None = None
    partner_id: str | None = None

    @classmethod
    def build(
        cls,
        year: int | str | None = None,
        month: int | str | None = None,
        day: int | str | None = None,
        country: str | None = None,
        partner_id: str | None = None,
    ) -> LifeEvent | None:
        """Build an event from loose form inputs.

        Blank inputs count as absent. Returns None when nothing at all was
        supplied. Non-numeric or out-of-range date parts raise ValueError.
        """
        parts = {
            name: _parse_date_part(value)
            for name, value in (("year", year), ("month", month), ("day", day))
        }
        parts = {name: value for name, value in parts.items() if value is not None}
        country = country.strip() if country and country.strip() else None
        partner_id = partner_id or None

        if not parts and country is None and partner_id is None:
            return None

        return cls(
            date=PartialDate(**parts) if parts else None,
            country=country,
            partner_id=partner_id,
        )

    @property
    def year(self) -> int | None:
        return self.date.year if self.date else None

    def with_partner(self, partner_id: str) -> LifeEvent:
        """Copy of this event pointing at a different partner."""
        return self.model_copy(update={"partner_id": partner_id})


class Person(BaseModel):
    """A node in the family graph.

    ``generation`` is a stored label (0 = self, positive = ancestors,
    negative = descendants). It is assigned when the record is created and
    nothing recomputes it afterwards.
    """

    model_config = RECORD_CONFIG

    id: str = Field(min_length=1)
    given_name: str | None = None
    family_name: str | None = None
    generation: int = 0
    parent_ids: tuple[str, ...] | None = None

    birth: LifeEvent | None = None
    death: LifeEvent | None = None
    marriages: tuple[LifeEvent, ...] = ()
    divorces: tuple[LifeEvent, ...] = ()
    naturalizations: tuple[LifeEvent, ...] = ()

    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)

    @field_validator("parent_ids", mode="before")
    @classmethod
    def _normalize_parent_ids(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (set, frozenset)):
            value = sorted(value)
        ids = tuple(dict.fromkeys(value))
        return ids or None

    @model_validator(mode="after")
    def _check_links(self) -> Person:
        if self.parent_ids and self.id in self.parent_ids:
            raise ValueError(f"person {self.id} cannot be their own parent")
        if any(event.partner_id for event in self.naturalizations):
            raise ValueError("naturalization events cannot reference a partner")
        return self

    @property
    def full_name(self) -> str | None:
        name = f"{self.given_name or ''} {self.family_name or ''}".strip()
        return name or None

    @property
    def birth_year(self) -> int | None:
        return self.birth.year if self.birth else None

    def has_parent(self, person_id: str) -> bool:
        return bool(self.parent_ids) and person_id in self.parent_ids

    def partner_ids(self) -> list[str]:
        """Partners referenced by marriage or divorce events, in event order."""
        ids = [e.partner_id for e in (*self.marriages, *self.divorces) if e.partner_id]
        return list(dict.fromkeys(ids))

    @classmethod
    def canonical_keys(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        """Rename camelCase wire keys to field names; other keys pass through."""
        aliases = {f.alias: name for name, f in cls.model_fields.items() if f.alias}
        return {aliases.get(key, key): value for key, value in data.items()}

    def patched(self, patch: Mapping[str, Any], *, updated_at: int) -> Person:
        """Shallow-merge ``patch`` into a new, re-validated record.

        Keys may be field names or their camelCase aliases. Sequence fields
        are replaced wholesale, not merged.
        """
        patch = self.canonical_keys(patch)
        unknown = set(patch) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"unknown person fields: {sorted(unknown)}")
        protected = set(patch) & PROTECTED_FIELDS
        if protected:
            raise ValueError(f"fields cannot be patched: {sorted(protected)}")

        data = self.model_dump()
        data.update(patch)
        data["updated_at"] = updated_at
        return type(self).model_validate(data)

    def touched(self, updated_at: int) -> Person:
        return self.model_copy(update={"updated_at": updated_at})

    def to_record(self) -> dict[str, Any]:
        """Wire representation (camelCase keys, absent fields omitted)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
