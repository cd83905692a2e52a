"""Custom exceptions for the registrar store."""


class StoreError(Exception):
    """Base exception for registrar store errors."""


class StoreUnavailableError(StoreError):
    """The database could not be reached or timed out. Safe to retry."""


class CourseNotFoundError(StoreError):
    """Course with given ID or code does not exist."""


class CourseExistsError(StoreError):
    """Course with given code already exists."""


class StudentNotFoundError(StoreError):
    """Student with given ID does not exist."""


class StudentExistsError(StoreError):
    """Student with given email already exists."""


class EnrollmentNotFoundError(StoreError):
    """Enrollment with given ID does not exist."""


class EnrollmentConflictError(StoreError):
    """A live enrollment for this student, course and semester already exists."""


class CreditLimitExceededError(StoreError):
    """Inserting the enrollment would push the student past their credit ceiling."""

    def __init__(self, current: int, requested: int, maximum: int) -> None:
        """Initialize with the credit figures.

        Args:
            current: Credits already held in enrolled status this semester.
            requested: Credits of the course being added.
            maximum: The student's ceiling.
        """
        self.current = current
        self.requested = requested
        self.maximum = maximum
        super().__init__(
            f"Enrolling would hold {current + requested} credits, limit is {maximum}"
        )


class InvalidTransitionError(StoreError):
    """Enrollment status change is not allowed from its current status."""
