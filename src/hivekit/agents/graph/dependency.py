"""Static dependency graphs with cycle detection."""

from typing import Dict, Iterable, List, Mapping, Optional, Set

from loguru import logger

from ..errors import AgentNotFoundError, CircularDependencyError, ConfigurationError


class DependencyGraph:
    """Directed graph of named vertices frozen at construction.

    Used both for agent delegation (edges from ``delegates_to``) and for
    workflow nodes (edges from ``depends_on``).
    """

    def __init__(self, edges: Mapping[str, Iterable[str]], kind: str = "dependency", name: str = "graph"):
        """Build and validate the graph.

        Args:
            edges: Vertex name -> names it points to
            kind: Word used in error messages ("delegation", "node dependency")
            name: Graph name for logging

        Raises:
            ConfigurationError: If an edge targets an unknown vertex
            CircularDependencyError: If the graph has a cycle
        """
        self.name = name
        self.kind = kind
        self.edges: Dict[str, List[str]] = {v: list(dict.fromkeys(targets)) for v, targets in edges.items()}

        self._check_references()
        self._check_cycles()
        logger.debug(f"[GRAPH:{self.name}] Validated {len(self.edges)} vertices")

    @classmethod
    def for_agents(cls, definitions: Mapping[str, object]) -> 'DependencyGraph':
        """Delegation graph of a set of agent definitions."""
        return cls(
            {name: d.delegates_to for name, d in definitions.items()},
            kind="delegation",
            name="agents",
        )

    def _check_references(self) -> None:
        for vertex, targets in self.edges.items():
            for target in targets:
                if target not in self.edges:
                    if self.kind == "delegation":
                        raise AgentNotFoundError(target, referenced_by=vertex)
                    raise ConfigurationError(f"'{vertex}' depends on unknown '{target}'")

    def _check_cycles(self) -> None:
        visited: Set[str] = set()

        for vertex in self.edges:
            cycle = self._walk(vertex, [], visited)
            if cycle:
                raise CircularDependencyError(cycle, kind=self.kind)

    def _walk(self, vertex: str, path: List[str], visited: Set[str]) -> Optional[List[str]]:
        # path is the recursion stack, visited holds fully explored vertices
        if vertex in path:
            return path[path.index(vertex):] + [vertex]
        if vertex in visited:
            return None

        path.append(vertex)
        for target in self.edges[vertex]:
            cycle = self._walk(target, path, visited)
            if cycle:
                return cycle
        path.pop()
        visited.add(vertex)
        return None

    def targets(self, vertex: str) -> List[str]:
        return list(self.edges.get(vertex, []))

    def sources(self, vertex: str) -> List[str]:
        """Vertices with an edge pointing at ``vertex``."""
        return [v for v, targets in self.edges.items() if vertex in targets]

    def roots(self) -> List[str]:
        pointed = {t for targets in self.edges.values() for t in targets}
        return [v for v in self.edges if v not in pointed]

    def leaves(self) -> List[str]:
        return [v for v, targets in self.edges.items() if not targets]

    def topological_levels(self) -> List[List[str]]:
        """Group vertices so that every vertex comes after all its targets.

        For a dependency graph each level only needs earlier levels.
        """
        remaining = {v: set(targets) for v, targets in self.edges.items()}
        levels = []
        done: Set[str] = set()
        while remaining:
            ready = [v for v, targets in remaining.items() if targets <= done]
            levels.append(ready)
            done.update(ready)
            for v in ready:
                del remaining[v]
        return levels

    def reachable_from(self, vertex: str) -> Set[str]:
        seen: Set[str] = set()
        stack = [vertex]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.edges.get(current, []))
        return seen

    def visualize(self) -> str:
        lines = [f"{self.kind.title()} graph: {self.name}"]
        for level_idx, level in enumerate(self.topological_levels()):
            lines.append(f"  Level {level_idx + 1}:")
            for vertex in level:
                targets = ", ".join(self.edges[vertex]) or "-"
                lines.append(f"    {vertex} -> {targets}")
        return "\n".join(lines)
