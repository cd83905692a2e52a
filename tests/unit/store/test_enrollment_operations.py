"""Unit tests for RegistrarStore enrollment operations."""

import pytest

from coursegate.store import (
    Course,
    CourseNotFoundError,
    CreditLimitExceededError,
    EnrollmentConflictError,
    EnrollmentNotFoundError,
    EnrollmentStatus,
    InvalidTransitionError,
    RegistrarStore,
    Student,
)


@pytest.fixture
def store():
    """Create an in-memory RegistrarStore for testing."""
    s = RegistrarStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def student(store: RegistrarStore) -> Student:
    """A student with the default 18-credit ceiling."""
    return store.create_student(name="Ada", email="ada@example.edu")


@pytest.fixture
def course(store: RegistrarStore) -> Course:
    """A 4-credit course."""
    return store.create_course(code="CSE302", title="Algorithms", credits=4)


@pytest.mark.unit
class TestInsertEnrollment:
    """Tests for insert_enrollment_if_absent."""

    def test_insert_creates_enrolled_row(
        self, store: RegistrarStore, student: Student, course: Course
    ) -> None:
        """A new enrollment starts in enrolled status."""
        enrollment = store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024")

        assert enrollment.id is not None
        assert enrollment.status == EnrollmentStatus.ENROLLED.value
        assert enrollment.course.code == "CSE302"
        assert enrollment.created_at is not None

    def test_insert_duplicate_raises_conflict(
        self, store: RegistrarStore, student: Student, course: Course
    ) -> None:
        """A second live row for the same triple is refused."""
        store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024")

        with pytest.raises(EnrollmentConflictError):
            store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024")

        assert len(store.list_enrollments(student_id=student.id)) == 1

    def test_insert_same_course_other_semester(
        self, store: RegistrarStore, student: Student, course: Course
    ) -> None:
        """Uniqueness is per semester."""
        store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024")
        store.insert_enrollment_if_absent(student.id, course.id, "Spring 2025")

        assert len(store.list_enrollments(student_id=student.id)) == 2

    def test_insert_after_drop_is_allowed(
        self, store: RegistrarStore, student: Student, course: Course
    ) -> None:
        """A dropped enrollment does not occupy the slot."""
        first = store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024")
        store.transition_enrollment(first.id, EnrollmentStatus.DROPPED)

        second = store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024")

        assert second.id != first.id
        assert second.status == EnrollmentStatus.ENROLLED.value

    def test_insert_after_completion_conflicts(
        self, store: RegistrarStore, student: Student, course: Course
    ) -> None:
        """A completed enrollment still occupies the slot."""
        first = store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024")
        store.transition_enrollment(first.id, EnrollmentStatus.COMPLETED)

        with pytest.raises(EnrollmentConflictError):
            store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024")

    def test_insert_rechecks_credit_ceiling(
        self, store: RegistrarStore, student: Student, course: Course
    ) -> None:
        """The credit sum is re-asserted inside the insert transaction."""
        heavy = store.create_course(code="BIG", title="Heavy", credits=16)
        store.insert_enrollment_if_absent(student.id, heavy.id, "Fall 2024", max_credits=18)

        with pytest.raises(CreditLimitExceededError) as exc_info:
            store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024", max_credits=18)

        assert exc_info.value.current == 16
        assert exc_info.value.requested == 4
        assert exc_info.value.maximum == 18

    def test_insert_unknown_course_raises(self, store: RegistrarStore, student: Student) -> None:
        """CourseNotFoundError for unknown course."""
        with pytest.raises(CourseNotFoundError):
            store.insert_enrollment_if_absent(student.id, "missing", "Fall 2024")


@pytest.mark.unit
class TestCreditAccounting:
    """Tests for enrolled_credits and completed_course_ids."""

    def test_enrolled_credits_sums_enrolled_only(
        self, store: RegistrarStore, student: Student, course: Course
    ) -> None:
        """Completed and dropped enrollments don't count toward the semester load."""
        other = store.create_course(code="CSE101", title="Intro", credits=3)
        third = store.create_course(code="MATH101", title="Calc", credits=5)
        store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024")
        done = store.insert_enrollment_if_absent(student.id, other.id, "Fall 2024")
        dropped = store.insert_enrollment_if_absent(student.id, third.id, "Fall 2024")
        store.transition_enrollment(done.id, EnrollmentStatus.COMPLETED)
        store.transition_enrollment(dropped.id, EnrollmentStatus.DROPPED)

        assert store.enrolled_credits(student.id, "Fall 2024") == 4

    def test_enrolled_credits_zero_when_empty(
        self, store: RegistrarStore, student: Student
    ) -> None:
        """No enrollments means zero credits."""
        assert store.enrolled_credits(student.id, "Fall 2024") == 0

    def test_completed_course_ids_spans_semesters(
        self, store: RegistrarStore, student: Student, course: Course
    ) -> None:
        """Completions from any semester are included."""
        other = store.create_course(code="CSE101", title="Intro", credits=3)
        a = store.insert_enrollment_if_absent(student.id, course.id, "Fall 2023")
        b = store.insert_enrollment_if_absent(student.id, other.id, "Spring 2024")
        store.transition_enrollment(a.id, EnrollmentStatus.COMPLETED)
        store.transition_enrollment(b.id, EnrollmentStatus.COMPLETED)

        assert store.completed_course_ids(student.id) == {course.id, other.id}

    def test_completed_course_ids_unknown_student(self, store: RegistrarStore) -> None:
        """Unknown student has no completions."""
        assert store.completed_course_ids("missing") == frozenset()


@pytest.mark.unit
class TestTransitions:
    """Tests for transition_enrollment."""

    def test_complete_enrollment(
        self, store: RegistrarStore, student: Student, course: Course
    ) -> None:
        """enrolled -> completed."""
        enrollment = store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024")

        updated = store.transition_enrollment(enrollment.id, EnrollmentStatus.COMPLETED)

        assert updated.status == EnrollmentStatus.COMPLETED.value
        assert store.get_enrollment(enrollment.id).status == EnrollmentStatus.COMPLETED.value

    def test_terminal_state_rejects_transition(
        self, store: RegistrarStore, student: Student, course: Course
    ) -> None:
        """completed -> dropped is refused."""
        enrollment = store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024")
        store.transition_enrollment(enrollment.id, EnrollmentStatus.COMPLETED)

        with pytest.raises(InvalidTransitionError):
            store.transition_enrollment(enrollment.id, EnrollmentStatus.DROPPED)

    def test_transition_to_enrolled_refused(
        self, store: RegistrarStore, student: Student, course: Course
    ) -> None:
        """enrolled -> enrolled is not a transition."""
        enrollment = store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024")

        with pytest.raises(InvalidTransitionError):
            store.transition_enrollment(enrollment.id, EnrollmentStatus.ENROLLED)

    def test_transition_unknown_enrollment(self, store: RegistrarStore) -> None:
        """EnrollmentNotFoundError for unknown id."""
        with pytest.raises(EnrollmentNotFoundError):
            store.transition_enrollment("missing", EnrollmentStatus.DROPPED)


@pytest.mark.unit
class TestListEnrollments:
    """Tests for list_enrollments and find_active_enrollment."""

    def test_list_filters(self, store: RegistrarStore, student: Student, course: Course) -> None:
        """semester and status filters."""
        other = store.create_course(code="CSE101", title="Intro", credits=3)
        store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024")
        spring = store.insert_enrollment_if_absent(student.id, other.id, "Spring 2025")
        store.transition_enrollment(spring.id, EnrollmentStatus.DROPPED)

        fall = store.list_enrollments(semester="Fall 2024")
        dropped = store.list_enrollments(status=EnrollmentStatus.DROPPED)

        assert [e.course_id for e in fall] == [course.id]
        assert [e.id for e in dropped] == [spring.id]
        assert store.list_enrollments(student_id="someone-else") == []

    def test_find_active_enrollment(
        self, store: RegistrarStore, student: Student, course: Course
    ) -> None:
        """Returns the live enrollment, None once dropped."""
        enrollment = store.insert_enrollment_if_absent(student.id, course.id, "Fall 2024")

        found = store.find_active_enrollment(student.id, course.id, "Fall 2024")
        assert found is not None
        assert found.id == enrollment.id

        store.transition_enrollment(enrollment.id, EnrollmentStatus.DROPPED)
        assert store.find_active_enrollment(student.id, course.id, "Fall 2024") is None


@pytest.mark.unit
class TestReloadAfterCommit:
    """A row missing on reload surfaces as a store error."""

    def test_missing_enrollment_is_not_found(self, store: RegistrarStore) -> None:
        """No raw NoResultFound escapes the store."""
        session = store.database.get_session()
        try:
            with pytest.raises(EnrollmentNotFoundError):
                store._load_enrollment(session, "vanished")
        finally:
            session.close()

    def test_missing_course_is_not_found(self, store: RegistrarStore) -> None:
        """Same for courses."""
        session = store.database.get_session()
        try:
            with pytest.raises(CourseNotFoundError):
                store._load_course(session, "vanished")
        finally:
            session.close()
