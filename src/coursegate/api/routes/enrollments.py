"""Enrollment endpoints."""

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from coursegate.api.dependencies import AdmissionDep, PrincipalDep
from coursegate.api.models import (
    APIResponse,
    EnrollmentCreate,
    EnrollmentResponse,
    enrollment_to_response,
    rejection_to_response,
)
from coursegate.store import EnrollmentStatus

router = APIRouter(prefix="/enrollments", tags=["enrollments"])


@router.get("", response_model=APIResponse[list[EnrollmentResponse]])
def list_enrollments(
    admission: AdmissionDep,
    principal: PrincipalDep,
    semester: str | None = Query(default=None, description="Filter by semester"),
    status: EnrollmentStatus | None = Query(default=None, description="Filter by status"),
) -> APIResponse[list[EnrollmentResponse]]:
    """List enrollments. Students only see their own."""
    enrollments = admission.list_enrollments(principal, semester=semester, status=status)
    return APIResponse(data=[enrollment_to_response(e) for e in enrollments])


@router.post(
    "",
    response_model=APIResponse[EnrollmentResponse],
    status_code=status.HTTP_201_CREATED,
)
def enroll(
    request: EnrollmentCreate,
    admission: AdmissionDep,
    principal: PrincipalDep,
) -> APIResponse[EnrollmentResponse] | JSONResponse:
    """Enroll the calling student in a course."""
    if request.course_code is not None:
        outcome = admission.enroll_by_code(principal, request.course_code, request.semester)
    else:
        outcome = admission.enroll(principal, request.course_id or "", request.semester)

    if outcome.rejection is not None:
        return rejection_to_response(outcome.rejection)
    return APIResponse(data=enrollment_to_response(outcome.value))
