"""Graph module providing the insertion-ordered dependency graph used by the engine."""

from ._dependency_graph import DependencyGraph

__all__ = ["DependencyGraph"]
