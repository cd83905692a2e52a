"""Data models for the Eligibility module."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class EligibilityResult:
    """Whether a course is unlocked for a student.

    Attributes:
        course_id: The course that was evaluated.
        unlocked: True iff every direct prerequisite is completed.
        missing_prerequisites: Incomplete prerequisite ids in declared order;
            empty iff unlocked.
    """

    course_id: str
    unlocked: bool
    missing_prerequisites: tuple[str, ...] = field(default_factory=tuple)
