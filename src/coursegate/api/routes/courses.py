"""Catalog endpoints."""

from fastapi import APIRouter, Query

from coursegate.api.dependencies import CatalogDep
from coursegate.api.models import (
    APIResponse,
    CourseResponse,
    PrerequisiteEdit,
    PrerequisiteEditResponse,
    course_to_response,
)
from coursegate.store import CourseType

router = APIRouter(prefix="/courses", tags=["courses"])


@router.get("", response_model=APIResponse[list[CourseResponse]])
def list_courses(
    catalog: CatalogDep,
    credits: int | None = Query(default=None, ge=1, description="Filter by credit hours"),
    course_type: CourseType | None = Query(default=None, description="core or elective"),
    has_prerequisites: bool | None = Query(
        default=None, description="Only courses with (true) or without (false) prerequisites"
    ),
) -> APIResponse[list[CourseResponse]]:
    """List catalog courses."""
    courses = catalog.list_courses(
        credits=credits,
        course_type=course_type,
        has_prerequisites=has_prerequisites,
    )
    return APIResponse(data=[course_to_response(c) for c in courses])


@router.get("/{course_id}", response_model=APIResponse[CourseResponse])
def get_course(course_id: str, catalog: CatalogDep) -> APIResponse[CourseResponse]:
    """Get a course by ID."""
    course = catalog.get_course(course_id)
    return APIResponse(data=course_to_response(course))


@router.post(
    "/{course_id}/prerequisites/validate",
    response_model=APIResponse[PrerequisiteEditResponse],
)
def validate_prerequisites(
    course_id: str, edit: PrerequisiteEdit, catalog: CatalogDep
) -> APIResponse[PrerequisiteEditResponse]:
    """Check a proposed prerequisite set without applying it.

    A cycle is reported as 409 by the CycleDetectedError handler.
    """
    catalog.validate_prerequisite_edit(course_id, edit.prerequisite_ids)
    return APIResponse(
        data=PrerequisiteEditResponse(
            course_id=course_id,
            prerequisite_ids=edit.prerequisite_ids,
            valid=True,
        )
    )
