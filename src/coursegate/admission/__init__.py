"""Admission package - Enrollment admission control."""

from coursegate.admission.exceptions import AdmissionError, AdmissionTimeoutError
from coursegate.admission.locks import StudentLockRegistry
from coursegate.admission.models import Outcome, Principal, Rejection, RejectionKind
from coursegate.admission.service import EnrollmentAdmission

__all__ = [
    "AdmissionError",
    "AdmissionTimeoutError",
    "EnrollmentAdmission",
    "Outcome",
    "Principal",
    "Rejection",
    "RejectionKind",
    "StudentLockRegistry",
]
