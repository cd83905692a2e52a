"""Catalog - owner of the current prerequisite graph snapshot."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING

from coursegate.catalog.exceptions import CycleDetectedError
from coursegate.catalog.graph import CourseGraph
from coursegate.store import CourseNotFoundError, CourseType

if TYPE_CHECKING:
    from coursegate.store import Course, RegistrarStore

logger = logging.getLogger(__name__)


class Catalog:
    """Course catalog backed by the registrar store.

    Keeps an immutable CourseGraph in memory together with the catalog
    revision it was built from. Reading `graph` compares that revision with
    the stored one and reloads when another engine on the same database has
    changed the catalog. Edits re-check for cycles against the stored
    relation inside the write transaction, then reload, so concurrent readers
    see either the old graph or the new one and never a half-applied edit.
    Writers in this process are serialized by a lock.
    """

    def __init__(self, store: RegistrarStore) -> None:
        """Initialize the catalog and load the graph from the store.

        Args:
            store: RegistrarStore holding courses and prerequisite edges.

        Raises:
            CycleDetectedError: If the stored prerequisites already contain a cycle.
        """
        self.store = store
        self._write_lock = threading.RLock()
        self._graph = CourseGraph()
        self._revision = -1
        self.rebuild()

    @property
    def graph(self) -> CourseGraph:
        """The current graph snapshot, reloaded if the stored catalog moved on."""
        if self.store.catalog_revision() != self._revision:
            return self.rebuild()
        return self._graph

    @property
    def revision(self) -> int:
        """Catalog revision the current snapshot was built from."""
        return self._revision

    def rebuild(self) -> CourseGraph:
        """Reload the whole graph from the store and swap it in.

        Returns:
            The new graph.

        Raises:
            CycleDetectedError: If the stored relation is cyclic. The previous
                graph stays in place.
        """
        with self._write_lock:
            revision, edges = self.store.prerequisite_snapshot()
            graph = CourseGraph(edges)
            graph.validate()
            self._graph = graph
            self._revision = revision
        logger.info("Catalog graph rebuilt at revision %d: %r", revision, graph)
        return graph

    # --- Reads ---

    def get_course(self, course_id: str) -> Course:
        """Get a course by id. Raises CourseNotFoundError if missing."""
        return self.store.get_course(course_id)

    def get_course_by_code(self, code: str) -> Course:
        """Get a course by code. Raises CourseNotFoundError if missing."""
        return self.store.get_course_by_code(code)

    def list_courses(
        self,
        credits: int | None = None,
        course_type: CourseType | None = None,
        has_prerequisites: bool | None = None,
    ) -> list[Course]:
        """List courses, optionally filtered, ordered by code."""
        return self.store.list_courses(
            credits=credits,
            course_type=course_type,
            has_prerequisites=has_prerequisites,
        )

    def prerequisites_of(self, course_id: str) -> frozenset[str]:
        """Direct prerequisites of a course from the current snapshot."""
        return self.graph.prerequisites_of(course_id)

    # --- Edits ---

    def validate_prerequisite_edit(
        self, course_id: str, prerequisite_ids: Iterable[str]
    ) -> CourseGraph:
        """Check an edit without applying it.

        Args:
            course_id: The course whose prerequisites would change.
            prerequisite_ids: The proposed prerequisite ids.

        Returns:
            The graph that applying the edit would produce.

        Raises:
            CourseNotFoundError: If the course or a prerequisite doesn't exist.
            CycleDetectedError: If the edit would create a cycle.
        """
        proposed = list(prerequisite_ids)
        graph = self.graph
        unknown = [cid for cid in [course_id, *proposed] if cid not in graph]
        if unknown:
            # The snapshot may lag the store; confirm before rejecting
            known = {course.id for course in self.store.list_courses()}
            missing = [cid for cid in unknown if cid not in known]
            if missing:
                raise CourseNotFoundError(f"Course(s) not found: {', '.join(missing)}")
        return graph.with_prerequisites(course_id, proposed)

    def define_course(
        self,
        code: str,
        title: str,
        credits: int,
        prerequisite_ids: Iterable[str] = (),
        description: str | None = None,
        course_type: CourseType = CourseType.CORE,
    ) -> Course:
        """Add a course to the catalog and to the graph.

        Raises:
            CourseExistsError: If the code is taken.
            CourseNotFoundError: If a prerequisite doesn't exist.
        """
        prerequisites = list(prerequisite_ids)
        with self._write_lock:
            course = self.store.create_course(
                code=code,
                title=title,
                credits=credits,
                prerequisite_ids=prerequisites,
                description=description,
                course_type=course_type,
            )
            self.rebuild()
        logger.info(
            "Defined course %s (%s) with %d prerequisite(s)",
            course.code,
            course.id,
            len(course.prerequisite_ids),
        )
        return course

    def set_prerequisites(self, course_id: str, prerequisite_ids: Iterable[str]) -> Course:
        """Replace a course's prerequisites.

        The edit is validated against the current graph, then validated again
        against the stored relation inside the write transaction, persisted,
        and only then made visible by reloading the graph. The second check
        catches edits committed meanwhile by another engine on the same
        database.

        Raises:
            CourseNotFoundError: If the course or a prerequisite doesn't exist.
            CycleDetectedError: If the edit would create a cycle.
        """
        proposed = list(prerequisite_ids)

        def check_stored(edges: dict[str, tuple[str, ...]]) -> None:
            CourseGraph(edges).with_prerequisites(course_id, proposed)

        with self._write_lock:
            try:
                self.validate_prerequisite_edit(course_id, proposed)
                course = self.store.replace_prerequisites(course_id, proposed, check=check_stored)
            except CycleDetectedError as e:
                logger.warning("Rejected prerequisite edit for %s: %s", course_id, e)
                raise
            self.rebuild()
        logger.info(
            "Prerequisites of %s set to [%s]", course.code, ", ".join(course.prerequisite_ids)
        )
        return course
