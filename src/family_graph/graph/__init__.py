"""Graph engine: store, synchronizer, eligibility, integrity audit, layout."""

from .eligibility import eligible_children, eligible_parents, is_ancestor_of, is_descendant_of
from .integrity import IntegrityIssue, IssueKind, audit, find_cycle, structural_issues
from .layout import EdgeKind, Layout, LayoutEdge, LayoutNode, compute_layout, generation_buckets
from .store import AddResult, GraphStore, StoreEvent, StoreEventKind
from .sync import missing_reciprocals, synchronize, synchronize_all

__all__ = [
    "AddResult",
    "EdgeKind",
    "GraphStore",
    "IntegrityIssue",
    "IssueKind",
    "Layout",
    "LayoutEdge",
    "LayoutNode",
    "StoreEvent",
    "StoreEventKind",
    "audit",
    "compute_layout",
    "eligible_children",
    "eligible_parents",
    "find_cycle",
    "generation_buckets",
    "is_ancestor_of",
    "is_descendant_of",
    "missing_reciprocals",
    "structural_issues",
    "synchronize",
    "synchronize_all",
]
