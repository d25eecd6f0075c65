"""Generational layout for the family diagram.

Pure and deterministic: the same collection always yields the same nodes,
edges and canvas size. People are bucketed by their stored ``generation``
(never re-derived), highest generation at the top. Each bucket is a row,
centered against the widest row.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..config import LayoutConfig
from ..models.person import Person
from ..models.labels import display_name


class EdgeKind(str, Enum):
    """Kinds of diagram connections."""
    PARENT = "parent"  # parent -> child
    MARRIAGE = "marriage"  # same-generation spouses (marriages only)


@dataclass(frozen=True)
class LayoutNode:
    """A positioned person."""
    person_id: str
    label: str
    generation: int
    x: float
    y: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "person_id": self.person_id,
            "label": self.label,
            "generation": self.generation,
            "x": self.x,
            "y": self.y,
        }


@dataclass(frozen=True)
class LayoutEdge:
    """A connection between two positioned people."""
    kind: EdgeKind
    source_id: str
    target_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "source_id": self.source_id,
            "target_id": self.target_id,
        }


@dataclass(frozen=True)
class Layout:
    """Complete layout result."""
    nodes: tuple[LayoutNode, ...] = ()
    edges: tuple[LayoutEdge, ...] = ()
    width: float = 0.0
    height: float = 0.0
    _by_id: dict[str, LayoutNode] = field(default_factory=dict, repr=False, compare=False)

    def node(self, person_id: str) -> LayoutNode | None:
        return self._by_id.get(person_id)

    def edges_of_kind(self, kind: EdgeKind) -> list[LayoutEdge]:
        return [e for e in self.edges if e.kind == kind]

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "width": self.width,
            "height": self.height,
        }


def generation_buckets(people: Sequence[Person]) -> list[tuple[int, list[Person]]]:
    """Group people by stored generation, highest generation first.

    Members keep their collection order inside a bucket.
    """
    buckets: dict[int, list[Person]] = {}
    for person in people:
        buckets.setdefault(person.generation, []).append(person)
    return [(generation, buckets[generation]) for generation in sorted(buckets, reverse=True)]


def compute_layout(people: Sequence[Person], config: LayoutConfig | None = None) -> Layout:
    """Position every person and derive the diagram's edges and canvas size.

    Args:
        people: Current collection
        config: Spacing (defaults to LayoutConfig())

    Returns:
        Layout whose width/height exactly bound the rows plus padding
    """
    config = config or LayoutConfig()
    spacing = config.horizontal_spacing
    row_height = config.generation_height

    buckets = generation_buckets(people)
    widest = max((len(members) for _, members in buckets), default=0)
    content_width = widest * spacing

    nodes: list[LayoutNode] = []
    ordered_people: list[Person] = []

    for index, (generation, members) in enumerate(buckets):
        y = config.padding_y + index * row_height + row_height / 2
        start_x = config.padding_x + (content_width - len(members) * spacing) / 2

        for position, person in enumerate(members):
            nodes.append(
                LayoutNode(
                    person_id=person.id,
                    label=display_name(person),
                    generation=generation,
                    x=start_x + position * spacing + spacing / 2,
                    y=y,
                )
            )
            ordered_people.append(person)

    node_map = {node.person_id: node for node in nodes}
    edges: list[LayoutEdge] = []
    married_pairs: set[frozenset[str]] = set()

    for person in ordered_people:
        for parent_id in person.parent_ids or ():
            if parent_id != person.id and parent_id in node_map:
                edges.append(LayoutEdge(EdgeKind.PARENT, parent_id, person.id))

        for partner_id in dict.fromkeys(e.partner_id for e in person.marriages if e.partner_id):
            partner = node_map.get(partner_id)
            if partner is None or partner_id == person.id:
                continue
            if partner.generation != person.generation:
                continue
            pair = frozenset((person.id, partner_id))
            if pair in married_pairs:
                continue
            married_pairs.add(pair)
            edges.append(LayoutEdge(EdgeKind.MARRIAGE, person.id, partner_id))

    return Layout(
        nodes=tuple(nodes),
        edges=tuple(edges),
        width=content_width + 2 * config.padding_x,
        height=len(buckets) * row_height + 2 * config.padding_y,
        _by_id=node_map,
    )
