"""REST API for coursegate."""

from coursegate.api.app import create_app
from coursegate.api.models import (
    APIResponse,
    EligibilityResponse,
    EnrollmentCreate,
    EnrollmentResponse,
)

__all__ = [
    "APIResponse",
    "EligibilityResponse",
    "EnrollmentCreate",
    "EnrollmentResponse",
    "create_app",
]
