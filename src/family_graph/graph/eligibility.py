"""Cycle-safe parent/child eligibility queries.

Used while a person is being edited: they answer which people may be
selected as that person's parents or children without creating a cycle
in the parent graph or inverting generation order.

All queries run against whatever collection the caller passes, including
an in-progress (unsaved) version of the edited person. They never raise;
the visited-set guard means even a collection that already contains a
cycle simply yields "not an ancestor" for the looping branch.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from ..models.person import LifeEvent, Person


def _index(people: Iterable[Person]) -> dict[str, Person]:
    return {p.id: p for p in people}


def _reaches(ancestor_id: str, start: Person, by_id: Mapping[str, Person]) -> bool:
    """Depth-first walk over parent links from ``start`` looking for ``ancestor_id``."""
    stack = [start]
    visited: set[str] = set()

    while stack:
        current = stack.pop()
        if current.id in visited:
            continue
        visited.add(current.id)

        parent_ids = current.parent_ids or ()
        if ancestor_id in parent_ids:
            return True

        for parent_id in reversed(parent_ids):
            parent = by_id.get(parent_id)
            if parent is not None and parent.id not in visited:
                stack.append(parent)

    return False


def is_ancestor_of(candidate: Person, person: Person, people: Sequence[Person]) -> bool:
    """True if ``candidate`` is a parent, grandparent, ... of ``person``."""
    return _reaches(candidate.id, person, _index(people))


def is_descendant_of(candidate: Person, person: Person, people: Sequence[Person]) -> bool:
    """True if ``candidate`` is a child, grandchild, ... of ``person``."""
    return is_ancestor_of(person, candidate, people)


def _coerce_year(value: int | str | None) -> int | None:
    if value is None:
        return None
    try:
        year = int(str(value).strip())
    except ValueError:
        return None
    return year or None


def eligible_parents(
    person: Person | None,
    people: Sequence[Person],
    excluded_ids: Iterable[str] = (),
) -> list[Person]:
    """People who may become ``person``'s parent.

    Args:
        person: The person being edited, or None for a brand new person
        people: Current collection
        excluded_ids: Ids already chosen as children in the same pending edit

    Returns:
        Candidates in collection order
    """
    if not people:
        return []

    by_id = _index(people)
    excluded = set(excluded_ids)
    generation = person.generation if person else 0
    eligible = []

    for candidate in people:
        if person is not None and candidate.id == person.id:
            continue
        if candidate.id in excluded:
            continue
        # Parents sit in the same or a higher generation
        if candidate.generation < generation:
            continue
        # A descendant of the person cannot also be their parent
        if person is not None and _reaches(person.id, candidate, by_id):
            continue
        eligible.append(candidate)

    return eligible


def eligible_children(
    person: Person | None,
    people: Sequence[Person],
    excluded_ids: Iterable[str] = (),
    pending_marriages: Iterable[LifeEvent] = (),
    pending_divorces: Iterable[LifeEvent] = (),
    birth_year_override: int | str | None = None,
) -> list[Person]:
    """People who may become ``person``'s child.

    Args:
        person: The person being edited, or None for a brand new person
        people: Current collection
        excluded_ids: Ids already chosen as parents in the same pending edit
        pending_marriages: Marriages from the unsaved form
        pending_divorces: Divorces from the unsaved form
        birth_year_override: Birth year typed into the form, used when the
            person has no recorded birth year yet

    Returns:
        Candidates in collection order
    """
    if not people:
        return []

    by_id = _index(people)
    excluded = set(excluded_ids)
    spouse_ids = {
        event.partner_id
        for event in (*pending_marriages, *pending_divorces)
        if event.partner_id
    }
    generation = person.generation if person else 0
    parent_year = (person.birth_year if person else None) or _coerce_year(birth_year_override)
    eligible = []

    for candidate in people:
        if person is not None and candidate.id == person.id:
            continue
        if candidate.id in excluded:
            continue
        if candidate.id in spouse_ids:
            continue
        # Children sit in the same or a lower generation
        if candidate.generation > generation:
            continue

        if person is not None:
            # An ancestor of the person cannot also be their child
            if _reaches(candidate.id, person, by_id):
                continue
            # Indirect descendants already descend through another child
            if not candidate.has_parent(person.id) and _reaches(person.id, candidate, by_id):
                continue

        child_year = candidate.birth_year
        if parent_year and child_year and child_year <= parent_year:
            continue

        eligible.append(candidate)

    return eligible
