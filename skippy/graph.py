"""Module dependency graph utilities.

Provides the dependency graph the affected-projects computation runs
against. Edges point from a dependent to its dependency: if A depends on B,
the graph holds the edge A → B, B is A's dependency and A is B's dependent.

Build graphs are usually acyclic, but transitional or broken configurations
can introduce cycles, so every traversal here tolerates them.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path

from .models import DependencyMetadata, SerializableGraph


class Node:
    """A module in a DependencyGraph.

    Attributes:
        key: Module key (e.g. ":app").
    """

    __slots__ = ("key", "_depends_on")

    def __init__(self, key: str) -> None:
        self.key = key
        self._depends_on: dict[str, Node] = {}

    @property
    def depends_on(self) -> list[Node]:
        """Direct dependencies, in the order their edges were added."""
        return list(self._depends_on.values())

    def visit_dependencies(self, into: set[Node]) -> None:
        """Add every node reachable from this one to ``into``.

        A dependency's own dependencies are only expanded when the
        dependency was not already in ``into``: anything already present has
        been, or is being, expanded by an earlier branch. This also makes
        the walk terminate on cycles. An explicit stack stands in for
        recursion so long module chains cannot hit the recursion limit.
        """
        stack = [self]
        while stack:
            node = stack.pop()
            for dependency in node._depends_on.values():
                if dependency not in into:
                    into.add(dependency)
                    stack.append(dependency)

    def __repr__(self) -> str:
        return f"Node({self.key!r})"


class DependencyGraph:
    """An immutable directed graph of module keys.

    Build one with create(), create_singular() or from_serializable().
    """

    def __init__(self, nodes: dict[str, Node]) -> None:
        self._nodes = nodes

    @classmethod
    def create(
        cls, edges: Iterable[tuple[str, str]], nodes: Iterable[str] = ()
    ) -> DependencyGraph:
        """Create a graph from (dependent, dependency) pairs.

        Args:
            edges: Edge pairs. Duplicates are collapsed.
            nodes: Extra module keys to include even if they have no edges.
        """
        by_key: dict[str, Node] = {}

        def node_for(key: str) -> Node:
            node = by_key.get(key)
            if node is None:
                node = by_key[key] = Node(key)
            return node

        for key in nodes:
            node_for(key)
        for dependent, dependency in edges:
            source = node_for(dependent)
            source._depends_on.setdefault(dependency, node_for(dependency))
        return cls(by_key)

    @classmethod
    def create_singular(cls, key: str) -> DependencyGraph:
        """Create a graph with a single module and no edges."""
        return cls.create((), nodes=(key,))

    @classmethod
    def from_serializable(cls, graph: SerializableGraph) -> DependencyGraph:
        return cls.create(graph.edges, nodes=graph.nodes)

    def serializable(self) -> SerializableGraph:
        return SerializableGraph(
            nodes=sorted(self._nodes),
            edges=sorted(
                (node.key, dep.key)
                for node in self._nodes.values()
                for dep in node.depends_on
            ),
        )

    def nodes(self) -> Iterator[Node]:
        return iter(self._nodes.values())

    def find(self, key: str) -> Node | None:
        return self._nodes.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def shallow_dependencies(self) -> dict[str, set[str]]:
        """Map each module to its direct dependencies."""
        return {
            node.key: {dep.key for dep in node.depends_on}
            for node in self._nodes.values()
        }

    def metadata(self) -> DependencyMetadata:
        """Compute full dependency and dependent sets for every module.

        This is the O(V·E) precompute that every query in a run shares.
        A module never appears in its own sets, even when it sits on a cycle.
        """
        projects_to_dependencies: dict[str, frozenset[str]] = {}
        for node in self._nodes.values():
            dependencies: set[Node] = set()
            node.visit_dependencies(dependencies)
            dependencies.discard(node)
            projects_to_dependencies[node.key] = frozenset(d.key for d in dependencies)

        return DependencyMetadata(
            projects_to_dependencies=projects_to_dependencies,
            projects_to_dependents={
                key: frozenset(value)
                for key, value in flip(projects_to_dependencies).items()
            },
        )


def flip(mapping: Mapping[str, Iterable[str]]) -> dict[str, set[str]]:
    """Transpose an adjacency mapping.

    Turns a module → dependencies map into a module → dependents map.
    Modules nobody depends on do not appear as keys.

    Example:
        flip({"a": {"b"}, "c": {"b"}}) → {"b": {"a", "c"}}
    """
    flipped: dict[str, set[str]] = {}
    for project, dependencies in mapping.items():
        for dependency in dependencies:
            flipped.setdefault(dependency, set()).add(project)
    return flipped


def read_edges(path: Path) -> list[tuple[str, str]]:
    """Read a newline-delimited edge list of ``:dependent,:dependency`` pairs.

    Blank lines are ignored.

    Raises:
        ValueError: If a line is not exactly two comma-separated keys.
    """
    edges: list[tuple[str, str]] = []
    for lineno, line in enumerate(path.read_text().splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        parts = [part.strip() for part in line.split(",")]
        if len(parts) != 2 or not all(parts):
            raise ValueError(f"{path}:{lineno}: expected ':dependent,:dependency', got {line!r}")
        edges.append((parts[0], parts[1]))
    return edges
