"""Data models for the Admission module."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, TypeVar

from coursegate.store import Role

T = TypeVar("T")


class RejectionKind(StrEnum):
    """Business-rule reasons an admission request is refused."""

    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    ALREADY_ENROLLED = "already_enrolled"
    PREREQUISITES_UNMET = "prerequisites_unmet"
    CREDIT_CAP_EXCEEDED = "credit_cap_exceeded"
    INVALID_REQUEST = "invalid_request"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as supplied by the identity provider.

    Attributes:
        student_id: Id of the calling user.
        role: The caller's role; only students may enroll.
    """

    student_id: str
    role: Role = Role.STUDENT

    @property
    def is_student(self) -> bool:
        """Whether the principal acts as a student."""
        return self.role == Role.STUDENT


@dataclass(frozen=True)
class Rejection:
    """A typed refusal.

    Attributes:
        kind: Why the request was refused.
        message: Human-readable explanation.
        detail: Kind-specific data, e.g. missing_prerequisites or the
            current/requested/max credit figures.
    """

    kind: RejectionKind
    message: str
    detail: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a value or a rejection, never both."""

    value: T | None = None
    rejection: Rejection | None = None

    @property
    def ok(self) -> bool:
        """True when the request succeeded."""
        return self.rejection is None

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def reject(cls, kind: RejectionKind, message: str, **detail: Any) -> Outcome[T]:
        return cls(rejection=Rejection(kind=kind, message=message, detail=detail))
