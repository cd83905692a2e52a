"""CompletionTracker - which courses a student has already completed."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from coursegate.store import RegistrarStore

logger = logging.getLogger(__name__)


class CompletionTracker:
    """Derives a student's completed course set from enrollment records.

    Each call reads the latest committed state; nothing is cached, because
    completions are written out-of-band by the grading process.
    """

    def __init__(self, store: RegistrarStore) -> None:
        self.store = store

    def completed_course_ids(self, student_id: str) -> frozenset[str]:
        """Ids of courses the student completed in any semester.

        Returns an empty set for a student with no completions, including an
        unknown student.
        """
        completed = self.store.completed_course_ids(student_id)
        logger.debug("Student %s has %d completed course(s)", student_id, len(completed))
        return completed
