"""EligibilityEvaluator - decides whether a course is unlocked."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from coursegate.eligibility.models import EligibilityResult

if TYPE_CHECKING:
    from collections.abc import Set

    from coursegate.catalog import CourseGraph

GraphProvider = Callable[[], "CourseGraph"]


class EligibilityEvaluator:
    """Pure check of a course's direct prerequisites against a completed set.

    Only direct prerequisites are checked. A completed prerequisite already
    had its own prerequisites enforced when it was taken.
    """

    def __init__(self, graph_provider: GraphProvider) -> None:
        """Initialize the evaluator.

        Args:
            graph_provider: Returns the graph snapshot to evaluate against.
                Called once per evaluation so catalog swaps are picked up.
        """
        self._graph_provider = graph_provider

    def evaluate(self, course_id: str, completed: Set[str]) -> EligibilityResult:
        """Evaluate one course for one completed set.

        Args:
            course_id: The course to check.
            completed: Ids of courses the student has completed.

        Returns:
            EligibilityResult listing incomplete prerequisites in declared order.
        """
        graph = self._graph_provider()
        missing = tuple(
            prerequisite_id
            for prerequisite_id in graph.ordered_prerequisites_of(course_id)
            if prerequisite_id not in completed
        )
        return EligibilityResult(
            course_id=course_id,
            unlocked=not missing,
            missing_prerequisites=missing,
        )
