"""Dependency graph construction and traversal."""

import logging
from collections.abc import Iterator, Mapping

from hmake.core.models import Target
from hmake.exceptions import CycleDetectedError, DependencyNotFoundError, TargetNotFoundError

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Directed acyclic graph of targets.

    An edge ``a -> b`` means target ``a`` depends on target ``b``. Each
    vertex keeps its outgoing edges as an ordered set, so traversal follows
    dependencies in the order they were declared.
    """

    def __init__(self) -> None:
        self._adjacency: dict[str, dict[str, None]] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._adjacency

    def __len__(self) -> int:
        return len(self._adjacency)

    def __iter__(self) -> Iterator[str]:
        return iter(self._adjacency)

    @property
    def vertices(self) -> list[str]:
        return list(self._adjacency)

    @property
    def edge_count(self) -> int:
        return sum(len(deps) for deps in self._adjacency.values())

    def has_vertex(self, name: str) -> bool:
        return name in self._adjacency

    def add_vertex(self, name: str) -> None:
        """Add a vertex; adding an existing vertex is a no-op."""
        self._adjacency.setdefault(name, {})

    def dependencies_of(self, name: str) -> list[str]:
        """Direct dependencies of ``name``, in declaration order."""
        if name not in self._adjacency:
            raise TargetNotFoundError(name)
        return list(self._adjacency[name])

    def add_edge(self, source: str, target: str) -> None:
        """Add the edge ``source -> target``.

        Raises TargetNotFoundError for an unknown source,
        DependencyNotFoundError for an unknown target and CycleDetectedError
        if the edge would close a cycle. A rejected edge leaves the graph
        unchanged.
        """
        if source not in self._adjacency:
            raise TargetNotFoundError(source)
        if target not in self._adjacency:
            raise DependencyNotFoundError(source, target)

        if target in self._adjacency[source]:
            logger.debug(f"Edge {source} -> {target} already present")
            return

        cycle = self.find_path(target, source)
        if cycle is not None:
            raise CycleDetectedError([source] + cycle)

        self._adjacency[source][target] = None

    def creates_cycle(self, source: str, target: str) -> bool:
        """Whether adding ``source -> target`` would close a cycle."""
        return self.find_path(target, source) is not None

    def find_path(self, start: str, end: str) -> list[str] | None:
        """Return a path of vertices from ``start`` to ``end``, or None."""
        if start not in self._adjacency:
            return None

        parents: dict[str, str | None] = {start: None}
        stack = [start]
        while stack:
            current = stack.pop()
            if current == end:
                path = [current]
                while (parent := parents[path[-1]]) is not None:
                    path.append(parent)
                return list(reversed(path))
            for dep in self._adjacency[current]:
                if dep not in parents:
                    parents[dep] = current
                    stack.append(dep)
        return None

    def dfs(self, start: str) -> list[str]:
        """Depth-first pre-order traversal from ``start``.

        Each reachable vertex appears once. The first dependency is explored
        fully before its next sibling.
        """
        if start not in self._adjacency:
            raise TargetNotFoundError(start)

        order: list[str] = []
        visited: set[str] = set()
        stack = [start]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            order.append(current)
            # Push in reverse so the first declared dependency is popped first
            stack.extend(reversed([dep for dep in self._adjacency[current] if dep not in visited]))
        return order


def build_graph(targets: Mapping[str, Target]) -> DependencyGraph:
    """Build the dependency graph for a set of parsed targets.

    Every target except ``.PHONY`` becomes a vertex, then every dependency
    of a non-phony target becomes an edge. Dangling dependencies and cycles
    are fatal.
    """
    graph = DependencyGraph()

    for name, target in targets.items():
        if target.is_phony:
            continue
        graph.add_vertex(name)

    for name, target in targets.items():
        if target.is_phony:
            continue
        for dep in target.dependencies:
            graph.add_edge(name, dep)

    logger.info(f"Built dependency graph: {len(graph)} vertices, {graph.edge_count} edges")
    return graph
