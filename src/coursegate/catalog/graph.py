"""Immutable prerequisite graph over course ids.

Edges point from a course to each of its prerequisites. The graph only ever
holds ids; course records are looked up separately. Every edit returns a new
graph, so a snapshot handed to a reader never changes underneath it.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from coursegate.catalog.exceptions import CycleDetectedError

_WHITE = 0
_GRAY = 1
_BLACK = 2


def _dedupe(ids: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(ids))


def _walk_for_cycle(
    edges: Mapping[str, tuple[str, ...]],
    start: str,
    color: dict[str, int],
) -> list[str] | None:
    """Depth-first search from start using an explicit stack.

    Nodes on the current path are gray; finished nodes are black. Reaching a
    gray node means the path loops back on itself.

    Returns:
        The cycle as a list of ids whose first and last entries are equal,
        or None if no cycle is reachable from start.
    """
    color[start] = _GRAY
    path = [start]
    stack: list[tuple[str, Iterator[str]]] = [(start, iter(edges.get(start, ())))]

    while stack:
        node, children = stack[-1]
        for child in children:
            state = color.get(child, _WHITE)
            if state == _GRAY:
                return path[path.index(child) :] + [child]
            if state == _WHITE:
                color[child] = _GRAY
                path.append(child)
                stack.append((child, iter(edges.get(child, ()))))
                break
        else:
            color[node] = _BLACK
            stack.pop()
            path.pop()

    return None


class CourseGraph:
    """Directed prerequisite graph, course -> prerequisite.

    Instances are immutable. Use with_prerequisites() to derive an edited
    copy; it refuses edits that would introduce a cycle.
    """

    def __init__(self, edges: Mapping[str, Iterable[str]] | None = None) -> None:
        """Initialize the graph.

        Args:
            edges: Mapping of course id to its prerequisite ids, in declared
                order. Prerequisites that are not keys are treated as courses
                with no prerequisites of their own.
        """
        normalized = {course_id: _dedupe(ids) for course_id, ids in (edges or {}).items()}
        self._edges: Mapping[str, tuple[str, ...]] = MappingProxyType(normalized)

    @classmethod
    def from_edges(cls, edges: Iterable[tuple[str, str]]) -> CourseGraph:
        """Build a graph from (course_id, prerequisite_id) pairs."""
        mapping: dict[str, list[str]] = {}
        for course_id, prerequisite_id in edges:
            mapping.setdefault(course_id, []).append(prerequisite_id)
            mapping.setdefault(prerequisite_id, [])
        return cls(mapping)

    def __contains__(self, course_id: object) -> bool:
        return course_id in self._edges

    def __len__(self) -> int:
        return len(self._edges)

    def __repr__(self) -> str:
        edge_count = sum(len(ids) for ids in self._edges.values())
        return f"<CourseGraph(courses={len(self._edges)}, edges={edge_count})>"

    @property
    def course_ids(self) -> frozenset[str]:
        """Every course id known to the graph."""
        return frozenset(self._edges)

    def prerequisites_of(self, course_id: str) -> frozenset[str]:
        """Direct prerequisites of a course; empty for unknown courses."""
        return frozenset(self._edges.get(course_id, ()))

    def ordered_prerequisites_of(self, course_id: str) -> tuple[str, ...]:
        """Direct prerequisites of a course in declared order."""
        return self._edges.get(course_id, ())

    def find_cycle(
        self, course_id: str, proposed_prerequisite_ids: Iterable[str]
    ) -> list[str] | None:
        """Find the cycle an edit would create, if any.

        Simulates replacing course_id's prerequisites with the proposed set
        and searches from course_id. O(V+E).

        Args:
            course_id: The course being edited.
            proposed_prerequisite_ids: Its would-be prerequisites.

        Returns:
            The cycle path starting and ending at a repeated course, or None.
        """
        edges = dict(self._edges)
        edges[course_id] = _dedupe(proposed_prerequisite_ids)
        return _walk_for_cycle(edges, course_id, {})

    def would_create_cycle(self, course_id: str, proposed_prerequisite_ids: Iterable[str]) -> bool:
        """Check whether an edit would make a course (transitively) require itself."""
        return self.find_cycle(course_id, proposed_prerequisite_ids) is not None

    def with_prerequisites(self, course_id: str, prerequisite_ids: Iterable[str]) -> CourseGraph:
        """Return a copy of the graph with course_id's prerequisites replaced.

        Raises:
            CycleDetectedError: If the edit would create a cycle. The current
                graph is never modified.
        """
        proposed = _dedupe(prerequisite_ids)
        cycle = self.find_cycle(course_id, proposed)
        if cycle is not None:
            raise CycleDetectedError(course_id, cycle)

        edges = dict(self._edges)
        edges[course_id] = proposed
        for prerequisite_id in proposed:
            edges.setdefault(prerequisite_id, ())
        return CourseGraph(edges)

    def find_any_cycle(self) -> list[str] | None:
        """Search the whole graph for a cycle.

        Returns:
            The first cycle found, or None if the graph is acyclic.
        """
        color: dict[str, int] = {}
        for course_id in sorted(self._edges):
            if color.get(course_id, _WHITE) == _WHITE:
                cycle = _walk_for_cycle(self._edges, course_id, color)
                if cycle is not None:
                    return cycle
        return None

    def validate(self) -> None:
        """Assert the graph is acyclic.

        Raises:
            CycleDetectedError: Naming the first course on the cycle found.
        """
        cycle = self.find_any_cycle()
        if cycle is not None:
            raise CycleDetectedError(cycle[0], cycle)
