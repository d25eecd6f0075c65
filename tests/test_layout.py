"""Tests for the generational layout."""

import pytest

from family_graph.config import LayoutConfig
from family_graph.graph.layout import EdgeKind, compute_layout, generation_buckets
from family_graph.models import LifeEvent, Person


@pytest.fixture
def family():
    """D (gen 2) -> B (gen 1); B and C (gen 1, married) -> A (gen 0)."""
    d = Person(id="D", generation=2)
    b = Person(id="B", generation=1, parent_ids=["D"], marriages=[LifeEvent(partner_id="C")])
    c = Person(id="C", generation=1, marriages=[LifeEvent(partner_id="B")])
    a = Person(id="A", generation=0, parent_ids=["B", "C"])
    return [a, b, c, d]


def _pairs(layout, kind):
    return {(e.source_id, e.target_id) for e in layout.edges_of_kind(kind)}


class TestGenerationBuckets:
    """Tests for generation_buckets."""

    def test_highest_generation_first(self, family):
        buckets = generation_buckets(family)
        assert [(g, [p.id for p in members]) for g, members in buckets] == [
            (2, ["D"]),
            (1, ["B", "C"]),
            (0, ["A"]),
        ]

    def test_empty(self):
        assert generation_buckets([]) == []


class TestComputeLayout:
    """Tests for compute_layout."""

    def test_empty_collection(self):
        layout = compute_layout([])

        assert layout.nodes == ()
        assert layout.edges == ()
        assert layout.width == 200
        assert layout.height == 200

    def test_single_root(self):
        layout = compute_layout([Person(id="me")])
        node = layout.node("me")

        assert node.x == 200
        assert node.y == 190
        assert node.label == "Self"
        assert layout.width == 400
        assert layout.height == 380

    def test_positions(self, family):
        layout = compute_layout(family)

        # Widest row (B, C) sets the content width
        assert layout.width == 2 * 200 + 200
        assert layout.height == 3 * 180 + 200

        assert (layout.node("D").x, layout.node("D").y) == (300, 190)
        assert (layout.node("B").x, layout.node("B").y) == (200, 370)
        assert (layout.node("C").x, layout.node("C").y) == (400, 370)
        assert (layout.node("A").x, layout.node("A").y) == (300, 550)

    def test_shared_y_per_generation(self, family):
        layout = compute_layout(family)
        assert layout.node("B").y == layout.node("C").y

    def test_parent_edges(self, family):
        layout = compute_layout(family)
        assert _pairs(layout, EdgeKind.PARENT) == {("D", "B"), ("B", "A"), ("C", "A")}

    def test_marriage_edge_deduplicated(self, family):
        """Both spouses list the marriage; only one edge is drawn."""
        layout = compute_layout(family)
        marriages = layout.edges_of_kind(EdgeKind.MARRIAGE)

        assert len(marriages) == 1
        assert {marriages[0].source_id, marriages[0].target_id} == {"B", "C"}

    def test_divorce_draws_no_marriage_edge(self):
        """Only marriages connect spouses; a divorce-only pair stays unlinked."""
        x = Person(id="x", divorces=[LifeEvent(partner_id="y")])
        y = Person(id="y", divorces=[LifeEvent(partner_id="x")])
        assert compute_layout([x, y]).edges_of_kind(EdgeKind.MARRIAGE) == []

    def test_married_then_divorced_pair_keeps_one_edge(self):
        x = Person(
            id="x",
            marriages=[LifeEvent(partner_id="y")],
            divorces=[LifeEvent(partner_id="y")],
        )
        y = Person(id="y")
        layout = compute_layout([x, y])
        assert _pairs(layout, EdgeKind.MARRIAGE) == {("x", "y")}

    def test_cross_generation_partner_not_drawn(self):
        x = Person(id="x", generation=0, marriages=[LifeEvent(partner_id="y")])
        y = Person(id="y", generation=1, marriages=[LifeEvent(partner_id="x")])
        assert compute_layout([x, y]).edges_of_kind(EdgeKind.MARRIAGE) == []

    def test_dangling_references_ignored(self):
        x = Person(id="x", parent_ids=["ghost"], marriages=[LifeEvent(partner_id="nobody")])
        layout = compute_layout([x])
        assert layout.edges == ()

    def test_inconsistent_generations_still_laid_out(self):
        """Stored generations are used as-is, even when they disagree with parent links."""
        parent = Person(id="parent", generation=-1)
        child = Person(id="child", generation=0, parent_ids=["parent"])
        layout = compute_layout([parent, child])

        assert layout.node("child").y < layout.node("parent").y
        assert _pairs(layout, EdgeKind.PARENT) == {("parent", "child")}

    def test_deterministic(self, family):
        first = compute_layout(family)
        second = compute_layout(family)

        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_custom_config(self):
        config = LayoutConfig(generation_height=100, horizontal_spacing=50, padding_x=10, padding_y=20)
        layout = compute_layout([Person(id="me")], config)
        node = layout.node("me")

        assert (node.x, node.y) == (35, 70)
        assert (layout.width, layout.height) == (70, 140)

    def test_labels_use_names_or_generation(self, family):
        named = [family[0].model_copy(update={"given_name": "Ann"}), *family[1:]]
        layout = compute_layout(named)

        assert layout.node("A").label == "Ann"
        assert layout.node("D").label == "Grandparent"

    def test_to_dict(self, family):
        data = compute_layout(family).to_dict()

        assert len(data["nodes"]) == 4
        assert {"kind": "parent", "source_id": "D", "target_id": "B"} in data["edges"]
        assert data["width"] == 600
