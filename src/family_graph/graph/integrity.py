"""Integrity audit for a person collection.

Reports problems; never repairs them. The store uses the structural subset
to refuse bad collections, and the CLI `check` command shows the full audit.
"""
from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from ..models.person import Person
from .sync import missing_reciprocals

_VISITING = 1
_DONE = 2


class IssueKind(str, Enum):
    """Kinds of integrity problems."""
    # Structural: the store refuses collections with these
    DUPLICATE_ID = "duplicate_id"
    SELF_PARENT = "self_parent"
    CYCLE = "cycle"

    # Advisory
    DANGLING_PARENT = "dangling_parent"
    DANGLING_PARTNER = "dangling_partner"
    MISSING_RECIPROCAL = "missing_reciprocal"
    GENERATION_ORDER = "generation_order"
    BIRTH_ORDER = "birth_order"


STRUCTURAL_KINDS = frozenset({IssueKind.DUPLICATE_ID, IssueKind.SELF_PARENT, IssueKind.CYCLE})


@dataclass
class IntegrityIssue:
    """A single audit finding."""
    kind: IssueKind
    message: str
    person_ids: list[str] = field(default_factory=list)

    @property
    def is_structural(self) -> bool:
        return self.kind in STRUCTURAL_KINDS


def find_cycle(people: Sequence[Person]) -> list[str] | None:
    """Return one parent-link cycle as a closed id path, or None.

    The path starts and ends with the same id, e.g. ``[a, b, a]`` when
    b is a's parent and a is b's parent.
    """
    by_id = {p.id: p for p in people}
    state: dict[str, int] = {}

    for root in people:
        if state.get(root.id):
            continue

        path = [root.id]
        state[root.id] = _VISITING
        stack = [(root.id, iter(by_id[root.id].parent_ids or ()))]

        while stack:
            node_id, parents = stack[-1]
            advanced = False

            for parent_id in parents:
                if parent_id not in by_id:
                    continue
                seen = state.get(parent_id)
                if seen == _VISITING:
                    return [*path[path.index(parent_id):], parent_id]
                if seen is None:
                    state[parent_id] = _VISITING
                    path.append(parent_id)
                    stack.append((parent_id, iter(by_id[parent_id].parent_ids or ())))
                    advanced = True
                    break

            if not advanced:
                state[node_id] = _DONE
                path.pop()
                stack.pop()

    return None


def structural_issues(people: Sequence[Person]) -> list[IntegrityIssue]:
    """Problems that break the graph's invariants outright."""
    issues: list[IntegrityIssue] = []

    duplicates = sorted(pid for pid, count in Counter(p.id for p in people).items() if count > 1)
    if duplicates:
        issues.append(IntegrityIssue(IssueKind.DUPLICATE_ID, "duplicate person ids", duplicates))

    for person in people:
        if person.has_parent(person.id):
            issues.append(
                IntegrityIssue(IssueKind.SELF_PARENT, "person is listed as their own parent", [person.id])
            )

    cycle = find_cycle(people)
    # A self-parent is already reported above
    if cycle and len(cycle) > 2:
        issues.append(IntegrityIssue(IssueKind.CYCLE, "parent links form a cycle", cycle))

    return issues


def audit(people: Sequence[Person]) -> list[IntegrityIssue]:
    """Full audit: structural problems followed by advisory findings."""
    issues = structural_issues(people)
    by_id = {p.id: p for p in people}

    for person in people:
        for parent_id in person.parent_ids or ():
            parent = by_id.get(parent_id)
            if parent is None:
                issues.append(
                    IntegrityIssue(
                        IssueKind.DANGLING_PARENT,
                        "parent id does not exist",
                        [person.id, parent_id],
                    )
                )
                continue
            if parent.id == person.id:
                continue

            # Stored generations are authoritative; this only flags disagreement
            if parent.generation <= person.generation:
                issues.append(
                    IntegrityIssue(
                        IssueKind.GENERATION_ORDER,
                        f"parent generation {parent.generation} is not above "
                        f"child generation {person.generation}",
                        [parent.id, person.id],
                    )
                )

            if parent.birth_year and person.birth_year and person.birth_year <= parent.birth_year:
                issues.append(
                    IntegrityIssue(
                        IssueKind.BIRTH_ORDER,
                        f"child born {person.birth_year}, parent born {parent.birth_year}",
                        [parent.id, person.id],
                    )
                )

        for partner_id in person.partner_ids():
            if partner_id not in by_id:
                issues.append(
                    IntegrityIssue(
                        IssueKind.DANGLING_PARTNER,
                        "partner id does not exist",
                        [person.id, partner_id],
                    )
                )

    for kind, person_id, partner_id in missing_reciprocals(people):
        issues.append(
            IntegrityIssue(
                IssueKind.MISSING_RECIPROCAL,
                f"partner has no reciprocal entry in {kind}",
                [person_id, partner_id],
            )
        )

    return issues
