"""RegistrarStore - Main API for catalog, student and enrollment persistence."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, NoResultFound
from sqlalchemy.orm import Session

from coursegate.store.database import Database
from coursegate.store.exceptions import (
    CourseExistsError,
    CourseNotFoundError,
    CreditLimitExceededError,
    EnrollmentConflictError,
    EnrollmentNotFoundError,
    InvalidTransitionError,
    StudentExistsError,
    StudentNotFoundError,
)
from coursegate.store.models import (
    ACTIVE_STATUSES,
    ALLOWED_TRANSITIONS,
    CatalogRevision,
    Course,
    CoursePrerequisite,
    CourseType,
    Enrollment,
    EnrollmentStatus,
    Role,
    Student,
)


# Called with the stored prerequisite relation inside a catalog write; raises to abort it
EdgeCheck = Callable[[dict[str, tuple[str, ...]]], object]


def _dedupe(ids: Iterable[str]) -> list[str]:
    """Drop repeated ids, keeping first-seen order."""
    return list(dict.fromkeys(ids))


def _is_unique_violation(error: IntegrityError) -> bool:
    message = str(error.orig) if error.orig is not None else str(error)
    return "UNIQUE constraint failed" in message or "duplicate key" in message


class RegistrarStore:
    """Main API for registrar persistence.

    Provides operations for Courses (the catalog store), Students (the
    profile store) and Enrollments (the enrollment store).
    """

    def __init__(self, db_path: str = "coursegate.db", busy_timeout_ms: int = 30_000) -> None:
        """Initialize the store with a SQLite database.

        Creates database and tables if they don't exist.

        Args:
            db_path: Path to SQLite database file
            busy_timeout_ms: How long writers wait on a locked database
        """
        self._db = Database(db_path, busy_timeout_ms=busy_timeout_ms)
        self._db.create_tables()

    @property
    def database(self) -> Database:
        """The underlying database manager."""
        return self._db

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()

    # --- Course Operations ---

    def create_course(
        self,
        code: str,
        title: str,
        credits: int,
        prerequisite_ids: Iterable[str] = (),
        description: str | None = None,
        course_type: CourseType = CourseType.CORE,
    ) -> Course:
        """Create a new course.

        Prerequisites are stored in the order given. A brand-new course cannot
        close a cycle because nothing can reference it yet. Bumps the catalog
        revision in the same transaction.

        Args:
            code: Unique course code, e.g. "CSE101"
            title: Human-readable title
            credits: Credit hours, must be positive
            prerequisite_ids: Ids of courses that must be completed first
            description: Optional description
            course_type: Core or elective

        Returns:
            Created Course object with generated ID

        Raises:
            ValueError: If credits is not positive
            CourseExistsError: If a course with the same code already exists
            CourseNotFoundError: If a prerequisite id does not exist
        """
        if credits <= 0:
            raise ValueError(f"credits must be positive, got {credits}")

        prerequisites = _dedupe(prerequisite_ids)
        session = self._db.get_session()
        try:
            self._db.begin_write(session)
            self._require_courses_exist(session, prerequisites)
            course = Course(
                code=code,
                title=title,
                credits=credits,
                description=description,
                course_type=course_type.value,
            )
            session.add(course)
            session.flush()
            for position, prerequisite_id in enumerate(prerequisites):
                session.add(
                    CoursePrerequisite(
                        course_id=course.id,
                        prerequisite_id=prerequisite_id,
                        position=position,
                    )
                )
            self._bump_revision(session)
            session.commit()
            return self._load_course(session, course.id)
        except IntegrityError as e:
            session.rollback()
            if _is_unique_violation(e):
                raise CourseExistsError(f"Course with code '{code}' already exists") from e
            raise
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    def get_course(self, course_id: str) -> Course:
        """Get course by ID.

        Args:
            course_id: The course's unique ID

        Returns:
            The Course object

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        session = self._db.get_session()
        try:
            course = session.get(Course, course_id)
            if course is None:
                raise CourseNotFoundError(f"Course with id '{course_id}' not found")
            return course
        finally:
            session.close()

    def get_course_by_code(self, code: str) -> Course:
        """Get course by its catalog code.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        session = self._db.get_session()
        try:
            stmt = select(Course).where(Course.code == code)
            course = session.execute(stmt).scalar_one_or_none()
            if course is None:
                raise CourseNotFoundError(f"Course with code '{code}' not found")
            return course
        finally:
            session.close()

    def list_courses(
        self,
        credits: int | None = None,
        course_type: CourseType | None = None,
        has_prerequisites: bool | None = None,
    ) -> list[Course]:
        """List catalog courses with optional filters.

        Args:
            credits: Only courses worth exactly this many credits (optional)
            course_type: Only core or only elective courses (optional)
            has_prerequisites: True for courses with prerequisites, False for
                courses without (optional)

        Returns:
            List of courses, ordered by code
        """
        session = self._db.get_session()
        try:
            stmt = select(Course)

            if credits is not None:
                stmt = stmt.where(Course.credits == credits)
            if course_type is not None:
                stmt = stmt.where(Course.course_type == course_type.value)
            if has_prerequisites is not None:
                linked = select(CoursePrerequisite.course_id)
                if has_prerequisites:
                    stmt = stmt.where(Course.id.in_(linked))
                else:
                    stmt = stmt.where(Course.id.not_in(linked))

            stmt = stmt.order_by(Course.code)
            result = session.execute(stmt)
            return list(result.scalars().all())
        finally:
            session.close()

    def replace_prerequisites(
        self,
        course_id: str,
        prerequisite_ids: Iterable[str],
        check: EdgeCheck | None = None,
    ) -> Course:
        """Replace a course's prerequisite set in one transaction.

        The write lock is taken before anything is read, so `check` sees the
        relation exactly as the edit will be applied to it. Writers on other
        engines cannot slip an edge in between the check and the write.

        Args:
            course_id: The course being edited
            prerequisite_ids: New prerequisite ids, in declared order
            check: Called with the stored relation before writing; whatever
                it raises aborts the edit (e.g. CycleDetectedError)

        Returns:
            The updated Course object

        Raises:
            CourseNotFoundError: If the course or any prerequisite doesn't exist
        """
        prerequisites = _dedupe(prerequisite_ids)
        session = self._db.get_session()
        try:
            self._db.begin_write(session)
            self._require_courses_exist(session, [course_id])
            self._require_courses_exist(session, prerequisites)
            if check is not None:
                check(self._edges(session))

            session.execute(
                delete(CoursePrerequisite).where(CoursePrerequisite.course_id == course_id)
            )
            for position, prerequisite_id in enumerate(prerequisites):
                session.add(
                    CoursePrerequisite(
                        course_id=course_id,
                        prerequisite_id=prerequisite_id,
                        position=position,
                    )
                )
            session.execute(
                update(Course).where(Course.id == course_id).values(updated_at=func.now())
            )
            self._bump_revision(session)
            session.commit()
            return self._load_course(session, course_id)
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    def catalog_revision(self) -> int:
        """Current catalog revision; 0 before the first catalog write."""
        session = self._db.get_session()
        try:
            return self._revision(session)
        finally:
            session.close()

    def prerequisite_edges(self) -> dict[str, tuple[str, ...]]:
        """Read the whole prerequisite relation.

        Returns:
            Mapping of every course id to its prerequisite ids in declared order
        """
        return self.prerequisite_snapshot()[1]

    def prerequisite_snapshot(self) -> tuple[int, dict[str, tuple[str, ...]]]:
        """Read the catalog revision together with the prerequisite relation.

        The revision is read first. A write landing between the two reads
        leaves the pair looking older than its edges, which only causes one
        extra rebuild later.
        """
        session = self._db.get_session()
        try:
            revision = self._revision(session)
            return revision, self._edges(session)
        finally:
            session.close()

    # --- Student Operations ---

    def create_student(
        self,
        name: str,
        email: str,
        role: Role = Role.STUDENT,
        max_credits: int = 18,
    ) -> Student:
        """Create a new student profile.

        Raises:
            ValueError: If max_credits is not positive
            StudentExistsError: If a student with the same email already exists
        """
        if max_credits <= 0:
            raise ValueError(f"max_credits must be positive, got {max_credits}")

        session = self._db.get_session()
        try:
            student = Student(name=name, email=email, role=role.value, max_credits=max_credits)
            session.add(student)
            session.commit()
            session.refresh(student)
            return student
        except IntegrityError as e:
            session.rollback()
            if _is_unique_violation(e):
                raise StudentExistsError(f"Student with email '{email}' already exists") from e
            raise
        finally:
            session.close()

    def get_student(self, student_id: str) -> Student:
        """Get student by ID.

        Raises:
            StudentNotFoundError: If student doesn't exist
        """
        session = self._db.get_session()
        try:
            student = session.get(Student, student_id)
            if student is None:
                raise StudentNotFoundError(f"Student with id '{student_id}' not found")
            return student
        finally:
            session.close()

    def get_student_by_email(self, email: str) -> Student:
        """Get student by email (case-insensitive).

        Raises:
            StudentNotFoundError: If student doesn't exist
        """
        session = self._db.get_session()
        try:
            stmt = select(Student).where(Student.email == email.lower())
            student = session.execute(stmt).scalar_one_or_none()
            if student is None:
                raise StudentNotFoundError(f"Student with email '{email}' not found")
            return student
        finally:
            session.close()

    # --- Enrollment Operations ---

    def get_enrollment(self, enrollment_id: str) -> Enrollment:
        """Get enrollment by ID.

        Raises:
            EnrollmentNotFoundError: If enrollment doesn't exist
        """
        session = self._db.get_session()
        try:
            enrollment = session.get(Enrollment, enrollment_id)
            if enrollment is None:
                raise EnrollmentNotFoundError(f"Enrollment with id '{enrollment_id}' not found")
            return enrollment
        finally:
            session.close()

    def list_enrollments(
        self,
        student_id: str | None = None,
        semester: str | None = None,
        status: EnrollmentStatus | None = None,
        course_id: str | None = None,
    ) -> list[Enrollment]:
        """List enrollments with optional filters.

        Args:
            student_id: Filter by student (optional)
            semester: Filter by semester label (optional)
            status: Filter by status (optional)
            course_id: Filter by course (optional)

        Returns:
            List of enrollments, oldest first
        """
        session = self._db.get_session()
        try:
            stmt = select(Enrollment)

            if student_id is not None:
                stmt = stmt.where(Enrollment.student_id == student_id)
            if semester is not None:
                stmt = stmt.where(Enrollment.semester == semester)
            if status is not None:
                stmt = stmt.where(Enrollment.status == status.value)
            if course_id is not None:
                stmt = stmt.where(Enrollment.course_id == course_id)

            stmt = stmt.order_by(Enrollment.created_at, Enrollment.id)
            result = session.execute(stmt)
            return list(result.unique().scalars().all())
        finally:
            session.close()

    def find_active_enrollment(
        self, student_id: str, course_id: str, semester: str
    ) -> Enrollment | None:
        """Find the enrolled or completed enrollment for a triple, if any."""
        session = self._db.get_session()
        try:
            return self._find_active(session, student_id, course_id, semester)
        finally:
            session.close()

    def completed_course_ids(self, student_id: str) -> frozenset[str]:
        """Ids of every course the student has completed, in any semester."""
        session = self._db.get_session()
        try:
            stmt = select(Enrollment.course_id).where(
                Enrollment.student_id == student_id,
                Enrollment.status == EnrollmentStatus.COMPLETED.value,
            )
            return frozenset(session.execute(stmt).scalars())
        finally:
            session.close()

    def enrolled_credits(self, student_id: str, semester: str) -> int:
        """Sum of credits over the student's enrolled-status courses in a semester."""
        session = self._db.get_session()
        try:
            return self._enrolled_credits(session, student_id, semester)
        finally:
            session.close()

    def insert_enrollment_if_absent(
        self,
        student_id: str,
        course_id: str,
        semester: str,
        max_credits: int | None = None,
    ) -> Enrollment:
        """Insert an enrolled-status enrollment atomically.

        The credit total is recomputed and the row inserted in the same
        transaction. The partial unique index on (student, course, semester)
        rejects a second live row even when two callers race past the
        application-level duplicate check.

        Args:
            student_id: The enrolling student
            course_id: The course
            semester: Semester label
            max_credits: Credit ceiling to re-assert; None skips the check

        Returns:
            The created Enrollment

        Raises:
            EnrollmentConflictError: A live enrollment for the triple exists
            CreditLimitExceededError: The insert would exceed max_credits
            CourseNotFoundError: The course doesn't exist
        """
        session = self._db.get_session()
        try:
            self._db.begin_write(session)
            course = session.get(Course, course_id)
            if course is None:
                raise CourseNotFoundError(f"Course with id '{course_id}' not found")

            if self._find_active(session, student_id, course_id, semester) is not None:
                raise EnrollmentConflictError(
                    f"Student '{student_id}' already holds '{course.code}' in {semester}"
                )

            if max_credits is not None:
                current = self._enrolled_credits(session, student_id, semester)
                if current + course.credits > max_credits:
                    raise CreditLimitExceededError(
                        current=current, requested=course.credits, maximum=max_credits
                    )

            enrollment = Enrollment(student_id=student_id, course_id=course_id, semester=semester)
            enrollment.course = course
            session.add(enrollment)
            session.commit()
            return self._load_enrollment(session, enrollment.id)
        except IntegrityError as e:
            session.rollback()
            if _is_unique_violation(e):
                raise EnrollmentConflictError(
                    f"Student '{student_id}' already holds course '{course_id}' in {semester}"
                ) from e
            raise
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    def transition_enrollment(self, enrollment_id: str, status: EnrollmentStatus) -> Enrollment:
        """Move an enrollment to a terminal status.

        Used by the external grading and registration processes. Only
        enrolled -> completed and enrolled -> dropped are allowed. The update
        is conditional on the current status so two racing transitions cannot
        both apply.

        Raises:
            EnrollmentNotFoundError: If enrollment doesn't exist
            InvalidTransitionError: If the transition is not allowed
        """
        session = self._db.get_session()
        try:
            self._db.begin_write(session)
            enrollment = session.get(Enrollment, enrollment_id)
            if enrollment is None:
                raise EnrollmentNotFoundError(f"Enrollment with id '{enrollment_id}' not found")

            current = enrollment.enrollment_status
            if status not in ALLOWED_TRANSITIONS[current]:
                raise InvalidTransitionError(
                    f"Cannot move enrollment '{enrollment_id}' from {current} to {status}"
                )

            result = session.execute(
                update(Enrollment)
                .where(Enrollment.id == enrollment_id, Enrollment.status == current.value)
                .values(status=status.value, updated_at=func.now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidTransitionError(
                    f"Enrollment '{enrollment_id}' changed status concurrently"
                )
            session.commit()
            return self._load_enrollment(session, enrollment_id)
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    # --- Helpers ---

    def _load_course(self, session: Session, course_id: str) -> Course:
        stmt = (
            select(Course)
            .where(Course.id == course_id)
            .execution_options(populate_existing=True)
        )
        try:
            return session.execute(stmt).scalar_one()
        except NoResultFound as e:
            raise CourseNotFoundError(f"Course with id '{course_id}' not found") from e

    def _load_enrollment(self, session: Session, enrollment_id: str) -> Enrollment:
        stmt = (
            select(Enrollment)
            .where(Enrollment.id == enrollment_id)
            .execution_options(populate_existing=True)
        )
        try:
            return session.execute(stmt).unique().scalar_one()
        except NoResultFound as e:
            raise EnrollmentNotFoundError(f"Enrollment with id '{enrollment_id}' not found") from e

    def _edges(self, session: Session) -> dict[str, tuple[str, ...]]:
        edges: dict[str, list[str]] = {
            course_id: [] for course_id in session.execute(select(Course.id)).scalars()
        }
        stmt = select(CoursePrerequisite).order_by(
            CoursePrerequisite.course_id, CoursePrerequisite.position
        )
        for link in session.execute(stmt).scalars():
            edges.setdefault(link.course_id, []).append(link.prerequisite_id)
        return {course_id: tuple(ids) for course_id, ids in edges.items()}

    def _revision(self, session: Session) -> int:
        stmt = select(CatalogRevision.revision).where(CatalogRevision.id == 1)
        return session.execute(stmt).scalar_one_or_none() or 0

    def _bump_revision(self, session: Session) -> None:
        # Caller holds the write lock, so the first-row insert cannot race
        result = session.execute(
            update(CatalogRevision)
            .where(CatalogRevision.id == 1)
            .values(revision=CatalogRevision.revision + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            session.add(CatalogRevision(id=1, revision=1))

    def _require_courses_exist(self, session: Session, course_ids: list[str]) -> None:
        if not course_ids:
            return
        found = set(session.execute(select(Course.id).where(Course.id.in_(course_ids))).scalars())
        missing = [course_id for course_id in course_ids if course_id not in found]
        if missing:
            raise CourseNotFoundError(f"Course(s) not found: {', '.join(missing)}")

    def _find_active(
        self, session: Session, student_id: str, course_id: str, semester: str
    ) -> Enrollment | None:
        stmt = select(Enrollment).where(
            Enrollment.student_id == student_id,
            Enrollment.course_id == course_id,
            Enrollment.semester == semester,
            Enrollment.status.in_([s.value for s in ACTIVE_STATUSES]),
        )
        return session.execute(stmt).unique().scalar_one_or_none()

    def _enrolled_credits(self, session: Session, student_id: str, semester: str) -> int:
        stmt = (
            select(func.coalesce(func.sum(Course.credits), 0))
            .select_from(Enrollment)
            .join(Course, Course.id == Enrollment.course_id)
            .where(
                Enrollment.student_id == student_id,
                Enrollment.semester == semester,
                Enrollment.status == EnrollmentStatus.ENROLLED.value,
            )
        )
        return int(session.execute(stmt).scalar_one())
