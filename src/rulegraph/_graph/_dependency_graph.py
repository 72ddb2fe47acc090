"""Generic dependency graph abstraction."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from .._errors import CycleError

_EXHAUSTED = object()

T = TypeVar("T")


@dataclass(slots=True)
class DependencyGraph(Generic[T]):
    """A directed graph representing dependencies between nodes.

    Unlike a static build graph, this graph grows while rules execute, so it is
    mutable. Neighbour sets are kept in insertion order: the engine notifies
    dependents in the order their edges were first discovered.

    The graph represents "depends on" relationships:
    - predecessors(b) == (a,) means "b depends on a"
    - successors(a) == (b,) means "a is depended on by b"

    Attributes:
        _predecessors: Mapping from node to its direct dependencies.
        _successors: Mapping from node to nodes that depend on it.

    """

    # dicts with None values serve as insertion-ordered sets
    _predecessors: dict[T, dict[T, None]] = field(default_factory=dict)
    _successors: dict[T, dict[T, None]] = field(default_factory=dict)

    @classmethod
    def from_edges(cls, edges: Iterable[tuple[T, T]]) -> DependencyGraph[T]:
        """Build a graph from (source, target) edges.

        An edge (a, b) means "b depends on a".

        Example:
            >>> graph = DependencyGraph.from_edges([("a", "b"), ("b", "c")])
            >>> graph.predecessors("b")
            ('a',)

        """
        graph: DependencyGraph[T] = cls()
        for src, dst in edges:
            graph.add_edge(src, dst)
        return graph

    def add_node(self, node: T) -> None:
        """Add a node without any edges. Existing nodes are left untouched."""
        self._predecessors.setdefault(node, {})
        self._successors.setdefault(node, {})

    def add_edge(self, upstream: T, dependent: T) -> bool:
        """Record that ``dependent`` depends on ``upstream``.

        Returns:
            True if the edge is new, False if it was already present.

        """
        self.add_node(upstream)
        self.add_node(dependent)
        if dependent in self._successors[upstream]:
            return False
        self._successors[upstream][dependent] = None
        self._predecessors[dependent][upstream] = None
        return True

    def remove_edge(self, upstream: T, dependent: T) -> None:
        """Remove an edge if present; missing edges are ignored."""
        self._successors.get(upstream, {}).pop(dependent, None)
        self._predecessors.get(dependent, {}).pop(upstream, None)

    @property
    def nodes(self) -> tuple[T, ...]:
        """All nodes in the graph, in insertion order."""
        return tuple(self._successors)

    def edges(self) -> list[tuple[T, T]]:
        """All (upstream, dependent) edges, grouped by upstream node."""
        return [(src, dst) for src, dsts in self._successors.items() for dst in dsts]

    def predecessors(self, node: T) -> tuple[T, ...]:
        """Get direct dependencies of a node (nodes it depends on)."""
        return tuple(self._predecessors.get(node, ()))

    def successors(self, node: T) -> tuple[T, ...]:
        """Get direct dependents of a node, in edge discovery order."""
        return tuple(self._successors.get(node, ()))

    def roots(self) -> tuple[T, ...]:
        """Get nodes with no predecessors (input/source nodes)."""
        return tuple(n for n in self._successors if not self._predecessors.get(n))

    def descendants(self, node: T) -> frozenset[T]:
        """Get all transitive dependents of a node.

        Args:
            node: The node to query.

        Returns:
            Set of all nodes that transitively depend on this node.

        """
        visited: set[T] = set()
        stack = list(self.successors(node))
        while stack:
            current = stack.pop()
            if current not in visited:
                visited.add(current)
                stack.extend(self.successors(current))
        return frozenset(visited)

    def topological_order(self) -> list[T]:
        """Return nodes in evaluation order (dependencies before dependents).

        Walks the dependencies of each node in insertion order, so a graph
        discovered by evaluating rules in registration order yields that
        order back wherever the edges allow it.

        Raises:
            CycleError: If the graph contains a cycle. Its chain lists the
                nodes of the cycle in dependency direction, first node repeated
                at the end.

        """
        order: list[T] = []
        done: set[T] = set()
        for start in self._predecessors:
            if start in done:
                continue
            # path runs from a dependent towards its dependencies
            path = [start]
            pending = [iter(self._predecessors[start])]
            while pending:
                upstream = next(pending[-1], _EXHAUSTED)
                if upstream is _EXHAUSTED:
                    pending.pop()
                    node = path.pop()
                    done.add(node)
                    order.append(node)
                elif upstream in path:
                    cycle = path[path.index(upstream) :][::-1]
                    raise CycleError([*cycle, cycle[0]])
                elif upstream not in done:
                    path.append(upstream)
                    pending.append(iter(self._predecessors[upstream]))
        return order

    def has_cycle(self) -> bool:
        """Check if the graph contains a cycle."""
        try:
            self.topological_order()
        except CycleError:
            return True
        return False

    def copy(self) -> DependencyGraph[T]:
        """Return an independent copy of this graph."""
        return DependencyGraph(
            _predecessors={n: dict(deps) for n, deps in self._predecessors.items()},
            _successors={n: dict(deps) for n, deps in self._successors.items()},
        )

    def __len__(self) -> int:
        """Return the number of nodes in the graph."""
        return len(self._successors)

    def __contains__(self, node: object) -> bool:
        """Check if a node is in the graph."""
        return node in self._successors
