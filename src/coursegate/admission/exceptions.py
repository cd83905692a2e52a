"""Exceptions for the Admission module.

Business-rule refusals are returned as Rejection values. These exceptions are
for faults outside the business rules.
"""


class AdmissionError(Exception):
    """Base exception for admission faults."""

    pass


class AdmissionTimeoutError(AdmissionError):
    """The per-student admission slot could not be acquired in time.

    Nothing was written; the request may be retried.
    """

    pass
