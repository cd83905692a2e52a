"""Pydantic models for REST API."""

from datetime import datetime
from typing import Any, Generic, TypeVar

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, model_validator

from coursegate.admission import Rejection, RejectionKind

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    data: T | None = None
    error: str | None = None
    detail: dict[str, Any] | None = None


# Course models


class CourseResponse(BaseModel):
    """Response model for a catalog course."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    title: str
    description: str | None
    course_type: str
    credits: int
    prerequisite_ids: list[str]
    created_at: datetime
    updated_at: datetime


def course_to_response(course: Any) -> CourseResponse:
    """Convert a Course model to CourseResponse."""
    return CourseResponse.model_validate(course)


class PrerequisiteEdit(BaseModel):
    """Request model for a proposed prerequisite set."""

    prerequisite_ids: list[str] = Field(default_factory=list)


class PrerequisiteEditResponse(BaseModel):
    """Response model for a prerequisite edit check."""

    course_id: str
    prerequisite_ids: list[str]
    valid: bool


# Eligibility models


class EligibilityResponse(BaseModel):
    """Response model for an eligibility check."""

    model_config = ConfigDict(from_attributes=True)

    course_id: str
    unlocked: bool
    missing_prerequisites: list[str]


def eligibility_to_response(result: Any) -> EligibilityResponse:
    """Convert an EligibilityResult to EligibilityResponse."""
    return EligibilityResponse.model_validate(result)


# Enrollment models


class EnrollmentCreate(BaseModel):
    """Request model for an enrollment attempt.

    Exactly one of course_code and course_id identifies the course.
    """

    course_code: str | None = Field(default=None, min_length=1, max_length=50)
    course_id: str | None = Field(default=None, min_length=1, max_length=36)
    semester: str = Field(..., min_length=1, max_length=50)

    @model_validator(mode="after")
    def check_course_reference(self) -> "EnrollmentCreate":
        if (self.course_code is None) == (self.course_id is None):
            raise ValueError("Provide exactly one of course_code or course_id")
        return self


class EnrollmentResponse(BaseModel):
    """Response model for an enrollment."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    course_id: str
    semester: str
    status: str
    created_at: datetime
    updated_at: datetime


def enrollment_to_response(enrollment: Any) -> EnrollmentResponse:
    """Convert an Enrollment model to EnrollmentResponse."""
    return EnrollmentResponse.model_validate(enrollment)


# Rejections

REJECTION_STATUS: dict[RejectionKind, int] = {
    RejectionKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    RejectionKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionKind.ALREADY_ENROLLED: status.HTTP_409_CONFLICT,
    RejectionKind.PREREQUISITES_UNMET: status.HTTP_400_BAD_REQUEST,
    RejectionKind.CREDIT_CAP_EXCEEDED: status.HTTP_400_BAD_REQUEST,
    RejectionKind.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
}


def rejection_to_response(rejection: Rejection) -> JSONResponse:
    """Render a business-rule rejection with its mapped status code."""
    return JSONResponse(
        status_code=REJECTION_STATUS[rejection.kind],
        content=APIResponse[None](
            data=None,
            error=rejection.message,
            detail={"kind": rejection.kind.value, **rejection.detail},
        ).model_dump(),
    )
