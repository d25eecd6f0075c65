"""Family Graph - multi-generational family relationship engine.

Holds the person collection, keeps partner relationships reciprocal,
answers cycle-safe parent/child eligibility queries and lays the graph
out by generation.
"""

__version__ = "0.1.0"


# Lazy imports keep `import family_graph` cheap for the CLI
def __getattr__(name: str):
    if name == "GraphStore":
        from family_graph.graph.store import GraphStore
        return GraphStore
    if name == "compute_layout":
        from family_graph.graph.layout import compute_layout
        return compute_layout
    if name == "models":
        from family_graph import models
        return models
    if name == "persistence":
        from family_graph import persistence
        return persistence
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
