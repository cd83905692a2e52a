"""EnrollmentAdmission - transactional enrollment decisions."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from coursegate.admission.locks import StudentLockRegistry
from coursegate.admission.models import Outcome, Principal, RejectionKind
from coursegate.eligibility import CompletionTracker, EligibilityEvaluator
from coursegate.logging import get_logger, sanitize_for_log
from coursegate.store import (
    CourseNotFoundError,
    CreditLimitExceededError,
    EnrollmentConflictError,
    StoreUnavailableError,
    StudentNotFoundError,
)

if TYPE_CHECKING:
    from coursegate.catalog import Catalog
    from coursegate.eligibility import EligibilityResult
    from coursegate.store import Course, Enrollment, EnrollmentStatus, RegistrarStore, Student

logger = get_logger(__name__)


@contextmanager
def _storage_faults() -> Iterator[None]:
    """Re-raise driver-level failures as StoreUnavailableError."""
    try:
        yield
    except (OperationalError, PoolTimeoutError) as e:
        logger.error("Registrar store unavailable: %s", e)
        raise StoreUnavailableError("Registrar store unavailable, retry the request") from e


class EnrollmentAdmission:
    """Decides and commits enrollment requests.

    The admission steps run in a fixed order: role, existence, duplicate,
    prerequisites, credit cap, commit. The duplicate, prerequisite and credit
    steps and the commit run while holding the student's lock, so two
    requests for the same student never interleave their credit read and
    insert. The store re-asserts uniqueness and the credit ceiling inside the
    insert transaction.
    """

    def __init__(
        self,
        store: RegistrarStore,
        catalog: Catalog,
        locks: StudentLockRegistry | None = None,
        tracker: CompletionTracker | None = None,
        evaluator: EligibilityEvaluator | None = None,
    ) -> None:
        """Initialize the admission service.

        Args:
            store: RegistrarStore for students and enrollments.
            catalog: Catalog owning the prerequisite graph.
            locks: Per-student lock registry. Defaults to a 10s timeout.
            tracker: CompletionTracker; built from store if omitted.
            evaluator: EligibilityEvaluator; reads catalog.graph if omitted.
        """
        self.store = store
        self.catalog = catalog
        self.locks = locks if locks is not None else StudentLockRegistry()
        self.tracker = tracker if tracker is not None else CompletionTracker(store)
        self.evaluator = (
            evaluator if evaluator is not None else EligibilityEvaluator(lambda: catalog.graph)
        )

    # --- Read-only ---

    def check_eligibility(self, student_id: str, course_id: str) -> Outcome[EligibilityResult]:
        """Report whether a course is unlocked for a student. No side effects.

        Args:
            student_id: The student.
            course_id: The course.

        Returns:
            Outcome holding an EligibilityResult, or a NOT_FOUND rejection.
        """
        with _storage_faults():
            try:
                self.store.get_student(student_id)
                self.store.get_course(course_id)
            except (StudentNotFoundError, CourseNotFoundError) as e:
                return Outcome.reject(RejectionKind.NOT_FOUND, str(e))

            completed = self.tracker.completed_course_ids(student_id)
            result = self.evaluator.evaluate(course_id, completed)

        logger.debug(
            "Eligibility of student %s for course %s: unlocked=%s missing=%s",
            student_id,
            course_id,
            result.unlocked,
            list(result.missing_prerequisites),
        )
        return Outcome.success(result)

    def current_credits(self, student_id: str, semester: str) -> int:
        """Credits the student holds in enrolled status for a semester."""
        with _storage_faults():
            return self.store.enrolled_credits(student_id, semester)

    def list_enrollments(
        self,
        principal: Principal,
        semester: str | None = None,
        status: EnrollmentStatus | None = None,
    ) -> list[Enrollment]:
        """List enrollments visible to the principal.

        Students see only their own enrollments; staff and admins see all.
        """
        student_id = principal.student_id if principal.is_student else None
        with _storage_faults():
            return self.store.list_enrollments(
                student_id=student_id, semester=semester, status=status
            )

    # --- Mutating ---

    def enroll_by_code(
        self, principal: Principal, course_code: str, semester: str
    ) -> Outcome[Enrollment]:
        """Enroll the principal in the course with the given catalog code."""
        if not principal.is_student:
            return self._forbidden(principal)
        with _storage_faults():
            try:
                course = self.store.get_course_by_code(course_code)
            except CourseNotFoundError as e:
                return self._reject(principal, course_code, RejectionKind.NOT_FOUND, str(e))
        return self.enroll(principal, course.id, semester)

    def enroll(self, principal: Principal, course_id: str, semester: str) -> Outcome[Enrollment]:
        """Enroll the principal in a course for a semester.

        Args:
            principal: The authenticated caller; enrolls themselves.
            course_id: The course.
            semester: Semester label, e.g. "Fall 2024".

        Returns:
            Outcome holding the new Enrollment, or a typed rejection.

        Raises:
            AdmissionTimeoutError: If the student's admission slot stayed busy.
            StoreUnavailableError: If the database failed. Nothing was written.
        """
        if not principal.is_student:
            return self._forbidden(principal)

        semester = semester.strip()
        if not semester:
            return self._reject(
                principal, course_id, RejectionKind.INVALID_REQUEST, "Semester must not be blank"
            )

        with _storage_faults():
            try:
                student = self.store.get_student(principal.student_id)
                course = self.store.get_course(course_id)
            except (StudentNotFoundError, CourseNotFoundError) as e:
                return self._reject(principal, course_id, RejectionKind.NOT_FOUND, str(e))

            with self.locks.hold(student.id):
                return self._admit(principal, student, course, semester)

    def _admit(
        self, principal: Principal, student: Student, course: Course, semester: str
    ) -> Outcome[Enrollment]:
        existing = self.store.find_active_enrollment(student.id, course.id, semester)
        if existing is not None:
            return self._reject(
                principal,
                course.id,
                RejectionKind.ALREADY_ENROLLED,
                f"Already holds {course.code} in {semester} ({existing.status})",
                enrollment_id=existing.id,
                status=existing.status,
            )

        completed = self.tracker.completed_course_ids(student.id)
        eligibility = self.evaluator.evaluate(course.id, completed)
        if not eligibility.unlocked:
            missing = list(eligibility.missing_prerequisites)
            return self._reject(
                principal,
                course.id,
                RejectionKind.PREREQUISITES_UNMET,
                f"Complete the prerequisite course(s) of {course.code} first: "
                f"{', '.join(self._course_codes(missing))}",
                missing_prerequisites=missing,
            )

        current = self.store.enrolled_credits(student.id, semester)
        if current + course.credits > student.max_credits:
            return self._credit_cap(principal, course, current, student.max_credits)

        try:
            enrollment = self.store.insert_enrollment_if_absent(
                student.id, course.id, semester, max_credits=student.max_credits
            )
        except EnrollmentConflictError as e:
            return self._reject(principal, course.id, RejectionKind.ALREADY_ENROLLED, str(e))
        except CreditLimitExceededError as e:
            return self._credit_cap(principal, course, e.current, e.maximum)

        logger.info(
            "Admitted student %s to %s for %s (%d/%d credits)",
            student.id,
            course.code,
            semester,
            current + course.credits,
            student.max_credits,
        )
        return Outcome.success(enrollment)

    # --- Helpers ---

    def _course_codes(self, course_ids: list[str]) -> list[str]:
        codes = []
        for course_id in course_ids:
            try:
                codes.append(self.store.get_course(course_id).code)
            except CourseNotFoundError:
                codes.append(course_id)
        return codes

    def _credit_cap(
        self, principal: Principal, course: Course, current: int, maximum: int
    ) -> Outcome[Enrollment]:
        return self._reject(
            principal,
            course.id,
            RejectionKind.CREDIT_CAP_EXCEEDED,
            f"Enrolling in {course.code} would exceed the credit limit "
            f"({current} + {course.credits} > {maximum})",
            current=current,
            requested=course.credits,
            max=maximum,
        )

    def _forbidden(self, principal: Principal) -> Outcome[Enrollment]:
        logger.warning(
            "Rejected enrollment by %s: role %s may not enroll",
            sanitize_for_log(principal.student_id),
            principal.role,
        )
        return Outcome.reject(RejectionKind.FORBIDDEN, "Only students can enroll in courses")

    def _reject(
        self,
        principal: Principal,
        course_ref: str,
        kind: RejectionKind,
        message: str,
        **detail: object,
    ) -> Outcome[Enrollment]:
        logger.info(
            "Rejected enrollment of %s in %s: %s (%s)",
            sanitize_for_log(principal.student_id),
            sanitize_for_log(course_ref),
            kind,
            sanitize_for_log(message),
        )
        return Outcome.reject(kind, message, **detail)
