"""Eligibility endpoints."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from coursegate.api.dependencies import AdmissionDep
from coursegate.api.models import (
    APIResponse,
    EligibilityResponse,
    eligibility_to_response,
    rejection_to_response,
)

router = APIRouter(tags=["eligibility"])


@router.get(
    "/students/{student_id}/eligibility/{course_id}",
    response_model=APIResponse[EligibilityResponse],
)
def check_eligibility(
    student_id: str, course_id: str, admission: AdmissionDep
) -> APIResponse[EligibilityResponse] | JSONResponse:
    """Report whether a course is unlocked for a student. Read-only."""
    outcome = admission.check_eligibility(student_id, course_id)
    if outcome.rejection is not None:
        return rejection_to_response(outcome.rejection)
    return APIResponse(data=eligibility_to_response(outcome.value))
