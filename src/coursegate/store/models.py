"""SQLAlchemy models for the registrar store."""

from __future__ import annotations

import uuid
from datetime import datetime  # noqa: TC003 - used at runtime for SQLAlchemy
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


class EnrollmentStatus(StrEnum):
    """Enrollment status enum."""

    ENROLLED = "enrolled"
    COMPLETED = "completed"
    DROPPED = "dropped"


class Role(StrEnum):
    """Role of a principal as supplied by the identity provider."""

    STUDENT = "student"
    STAFF = "staff"
    ADMIN = "admin"


class CourseType(StrEnum):
    """Catalog classification of a course."""

    CORE = "core"
    ELECTIVE = "elective"


# Statuses that occupy a (student, course, semester) slot
ACTIVE_STATUSES = (EnrollmentStatus.ENROLLED, EnrollmentStatus.COMPLETED)

# Allowed lifecycle transitions; terminal states have no outgoing edges
ALLOWED_TRANSITIONS: dict[EnrollmentStatus, frozenset[EnrollmentStatus]] = {
    EnrollmentStatus.ENROLLED: frozenset({EnrollmentStatus.COMPLETED, EnrollmentStatus.DROPPED}),
    EnrollmentStatus.COMPLETED: frozenset(),
    EnrollmentStatus.DROPPED: frozenset(),
}


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class CoursePrerequisite(Base):
    """Edge of the prerequisite graph: course requires prerequisite."""

    __tablename__ = "course_prerequisites"
    __table_args__ = (
        CheckConstraint("course_id <> prerequisite_id", name="ck_prerequisite_not_self"),
    )

    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True
    )
    prerequisite_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<CoursePrerequisite(course_id={self.course_id!r}, "
            f"prerequisite_id={self.prerequisite_id!r})>"
        )


class CatalogRevision(Base):
    """Single-row counter bumped by every catalog write.

    Catalogs compare it with the revision their graph was built from to
    notice edits made through another engine on the same database.
    """

    __tablename__ = "catalog_revision"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<CatalogRevision(revision={self.revision!r})>"


class Course(Base):
    """Course model - catalog entry a student can enroll in."""

    __tablename__ = "courses"
    __table_args__ = (CheckConstraint("credits > 0", name="ck_course_credits_positive"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    course_type: Mapped[str] = mapped_column(String(20), nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    prerequisite_links: Mapped[list[CoursePrerequisite]] = relationship(
        "CoursePrerequisite",
        foreign_keys=[CoursePrerequisite.course_id],
        order_by=CoursePrerequisite.position,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __init__(
        self,
        code: str,
        title: str,
        credits: int,
        id: str | None = None,
        description: str | None = None,
        course_type: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.code = code
        self.title = title
        self.credits = credits
        self.description = description
        self.course_type = course_type if course_type is not None else CourseType.CORE.value

    @property
    def prerequisite_ids(self) -> tuple[str, ...]:
        """Prerequisite course ids in declared order."""
        return tuple(link.prerequisite_id for link in self.prerequisite_links)

    def __repr__(self) -> str:
        return f"<Course(id={self.id!r}, code={self.code!r}, credits={self.credits!r})>"


class Student(Base):
    """Student model - profile data the admission engine reads."""

    __tablename__ = "students"
    __table_args__ = (CheckConstraint("max_credits > 0", name="ck_student_max_credits_positive"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    max_credits: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __init__(
        self,
        name: str,
        email: str,
        id: str | None = None,
        role: str | None = None,
        max_credits: int = 18,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.name = name
        self.email = email.lower()
        self.role = role if role is not None else Role.STUDENT.value
        self.max_credits = max_credits

    def __repr__(self) -> str:
        return f"<Student(id={self.id!r}, email={self.email!r}, role={self.role!r})>"


class Enrollment(Base):
    """Enrollment model - a student's seat in a course for one semester."""

    __tablename__ = "enrollments"
    __table_args__ = (
        Index(
            "uq_enrollments_active_triple",
            "student_id",
            "course_id",
            "semester",
            unique=True,
            sqlite_where=text("status IN ('enrolled', 'completed')"),
            postgresql_where=text("status IN ('enrolled', 'completed')"),
        ),
        Index("ix_enrollments_student_semester", "student_id", "semester"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    student_id: Mapped[str] = mapped_column(String(36), ForeignKey("students.id"), nullable=False)
    course_id: Mapped[str] = mapped_column(String(36), ForeignKey("courses.id"), nullable=False)
    semester: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    course: Mapped[Course] = relationship("Course", lazy="joined")

    def __init__(
        self,
        student_id: str,
        course_id: str,
        semester: str,
        id: str | None = None,
        status: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.student_id = student_id
        self.course_id = course_id
        self.semester = semester
        self.status = status if status is not None else EnrollmentStatus.ENROLLED.value

    @property
    def enrollment_status(self) -> EnrollmentStatus:
        """Get status as EnrollmentStatus enum."""
        return EnrollmentStatus(self.status)

    @enrollment_status.setter
    def enrollment_status(self, value: EnrollmentStatus) -> None:
        """Set status from EnrollmentStatus enum."""
        self.status = value.value

    def __repr__(self) -> str:
        return (
            f"<Enrollment(id={self.id!r}, student_id={self.student_id!r}, "
            f"course_id={self.course_id!r}, semester={self.semester!r}, status={self.status!r})>"
        )
