"""Reciprocal partner relationships.

A marriage or divorce recorded on one person must also appear on the
partner's record. The synchronizer appends the missing mirror events.

It is single-hop: the mirror event added to a partner does not trigger a
further pass from that partner. Running it again over an already
consistent collection adds nothing.
"""
from __future__ import annotations

from collections.abc import Sequence

import structlog

from ..models.person import Person, now_ms

logger = structlog.get_logger(__name__)

PARTNER_EVENT_FIELDS = ("marriages", "divorces")


def synchronize(
    people: Sequence[Person],
    changed: Person,
    *,
    now: int | None = None,
) -> tuple[Person, ...]:
    """Mirror ``changed``'s partner events onto its partners.

    Args:
        people: Current collection (not modified)
        changed: The just-mutated person whose events are authoritative
        now: Timestamp stamped on partners that receive a mirror event

    Returns:
        New collection with any missing reciprocal events appended
    """
    stamp = now_ms() if now is None else now
    index = {p.id: i for i, p in enumerate(people)}
    result = list(people)

    for kind in PARTNER_EVENT_FIELDS:
        for event in getattr(changed, kind):
            partner_id = event.partner_id
            if not partner_id or partner_id == changed.id:
                continue

            position = index.get(partner_id)
            if position is None:
                # Partner no longer exists
                continue

            partner = result[position]
            existing: tuple = getattr(partner, kind)
            if any(e.partner_id == changed.id for e in existing):
                continue

            result[position] = partner.model_copy(
                update={
                    kind: (*existing, event.with_partner(changed.id)),
                    "updated_at": stamp,
                }
            )
            logger.debug(
                "sync.reciprocal_added",
                kind=kind,
                person_id=changed.id,
                partner_id=partner_id,
            )

    return tuple(result)


def synchronize_all(people: Sequence[Person], *, now: int | None = None) -> tuple[Person, ...]:
    """Run ``synchronize`` once for every person in the collection."""
    stamp = now_ms() if now is None else now
    result = tuple(people)
    for person in people:
        result = synchronize(result, person, now=stamp)
    return result


def missing_reciprocals(people: Sequence[Person]) -> list[tuple[str, str, str]]:
    """List ``(kind, person_id, partner_id)`` triples lacking a mirror event."""
    by_id = {p.id: p for p in people}
    missing = []
    for person in people:
        for kind in PARTNER_EVENT_FIELDS:
            for event in getattr(person, kind):
                partner = by_id.get(event.partner_id) if event.partner_id else None
                if partner is None or partner.id == person.id:
                    continue
                if not any(e.partner_id == person.id for e in getattr(partner, kind)):
                    missing.append((kind, person.id, partner.id))
    return missing
