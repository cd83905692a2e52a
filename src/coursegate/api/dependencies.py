"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from collections.abc import Generator  # noqa: TC003
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from coursegate.admission import EnrollmentAdmission, Principal, StudentLockRegistry
from coursegate.catalog import Catalog
from coursegate.store import RegistrarStore, Role

# Global engine components (initialized on app startup)
_store: RegistrarStore | None = None
_catalog: Catalog | None = None
_admission: EnrollmentAdmission | None = None


def init_engine(
    db_path: str = "coursegate.db",
    lock_timeout: float = 10.0,
    busy_timeout_ms: int = 30_000,
) -> EnrollmentAdmission:
    """Initialize the global store, catalog and admission service."""
    global _store, _catalog, _admission  # noqa: PLW0603
    _store = RegistrarStore(db_path, busy_timeout_ms=busy_timeout_ms)
    _catalog = Catalog(_store)
    _admission = EnrollmentAdmission(
        store=_store,
        catalog=_catalog,
        locks=StudentLockRegistry(timeout=lock_timeout),
    )
    return _admission


def close_engine() -> None:
    """Close the global engine components."""
    global _store, _catalog, _admission  # noqa: PLW0603
    if _store is not None:
        _store.close()
    _store = None
    _catalog = None
    _admission = None


def get_catalog() -> Generator[Catalog, None, None]:
    """Dependency that provides the Catalog instance."""
    if _catalog is None:
        raise RuntimeError("Engine not initialized. Call init_engine() first.")
    yield _catalog


def get_admission() -> Generator[EnrollmentAdmission, None, None]:
    """Dependency that provides the EnrollmentAdmission instance."""
    if _admission is None:
        raise RuntimeError("Engine not initialized. Call init_engine() first.")
    yield _admission


def get_principal(
    x_principal_id: Annotated[str, Header()],
    x_principal_role: Annotated[str, Header()] = Role.STUDENT.value,
) -> Principal:
    """Principal asserted by the upstream identity provider.

    The gateway in front of this service authenticates the caller and sets
    these headers; they are trusted as-is.
    """
    try:
        role = Role(x_principal_role.lower())
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown role '{x_principal_role}'",
        ) from e
    return Principal(student_id=x_principal_id, role=role)


# Type aliases for dependency injection
CatalogDep = Annotated[Catalog, Depends(get_catalog)]
AdmissionDep = Annotated[EnrollmentAdmission, Depends(get_admission)]
PrincipalDep = Annotated[Principal, Depends(get_principal)]
