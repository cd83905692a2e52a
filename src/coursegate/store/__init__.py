"""Registrar Store - Persistent storage for courses, students and enrollments."""

from coursegate.store.exceptions import (
    CourseExistsError,
    CourseNotFoundError,
    CreditLimitExceededError,
    EnrollmentConflictError,
    EnrollmentNotFoundError,
    InvalidTransitionError,
    StoreError,
    StoreUnavailableError,
    StudentExistsError,
    StudentNotFoundError,
)
from coursegate.store.models import (
    Course,
    CourseType,
    Enrollment,
    EnrollmentStatus,
    Role,
    Student,
)
from coursegate.store.store import RegistrarStore

__all__ = [
    "Course",
    "CourseExistsError",
    "CourseNotFoundError",
    "CourseType",
    "CreditLimitExceededError",
    "Enrollment",
    "EnrollmentConflictError",
    "EnrollmentNotFoundError",
    "EnrollmentStatus",
    "InvalidTransitionError",
    "RegistrarStore",
    "Role",
    "StoreError",
    "StoreUnavailableError",
    "Student",
    "StudentExistsError",
    "StudentNotFoundError",
]
