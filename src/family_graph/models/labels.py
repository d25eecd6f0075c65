"""Generation-derived relationship labels."""
from __future__ import annotations

from .person import Person


def relationship_name(generation: int) -> str:
    """Relationship of a generation layer to Self.

    0 -> Self, 1 -> Parent, 2 -> Grandparent, 3 -> Great Grandparent,
    -1 -> Child, -2 -> Grandchild, -3 -> Great Grandchild, and so on.
    """
    if generation == 0:
        return "Self"

    base = "Parent" if generation > 0 else "Child"
    grand = "Grandparent" if generation > 0 else "Grandchild"
    depth = abs(generation)

    if depth == 1:
        return base
    elif depth == 2:
        return grand
    greats = "Great " * (depth - 2)
    return f"{greats}{grand}"


def display_name(person: Person) -> str:
    """Full name when known, otherwise the generation label."""
    return person.full_name or relationship_name(person.generation)
