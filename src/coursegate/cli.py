"""CLI entry point for coursegate."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click
import yaml

from coursegate.admission import EnrollmentAdmission, Principal, StudentLockRegistry
from coursegate.catalog import Catalog, CycleDetectedError
from coursegate.config import ConfigError, EngineConfig, load_config
from coursegate.logging import get_logger, sanitize_for_log, setup_logging
from coursegate.store import (
    CourseNotFoundError,
    CourseType,
    RegistrarStore,
    Role,
    StudentExistsError,
)

logger = get_logger("cli")


@contextmanager
def open_engine(config: EngineConfig) -> Iterator[EnrollmentAdmission]:
    """Build store, catalog and admission service; close the store afterwards."""
    store = RegistrarStore(config.database.path, busy_timeout_ms=config.database.busy_timeout_ms)
    try:
        catalog = Catalog(store)
        yield EnrollmentAdmission(
            store=store,
            catalog=catalog,
            locks=StudentLockRegistry(timeout=config.admission.lock_timeout),
        )
    finally:
        store.close()


@click.group()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to coursegate.yaml",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """coursegate - course eligibility and enrollment admission."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    level = "DEBUG" if verbose else config.logging.level
    setup_logging(log_dir=config.logging.dir, level=level, console=verbose)
    ctx.obj = config


@main.command("init-db")
@click.pass_obj
def init_db(config: EngineConfig) -> None:
    """Create the registrar tables."""
    store = RegistrarStore(config.database.path, busy_timeout_ms=config.database.busy_timeout_ms)
    store.close()
    click.echo(f"Database ready at {config.database.path}")


@main.command("load-catalog")
@click.argument("catalog_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def load_catalog(config: EngineConfig, catalog_file: Path) -> None:
    """Load courses and students from a YAML file.

    Courses are created first and prerequisites (listed by code) are applied
    afterwards, so the file may list courses in any order. Courses and
    students that already exist are left as they are.
    """
    try:
        data = yaml.safe_load(catalog_file.read_text()) or {}
    except yaml.YAMLError as e:
        raise click.ClickException(f"Invalid YAML in {catalog_file}: {e}") from e
    if not isinstance(data, dict):
        raise click.ClickException("Catalog file must be a YAML mapping")

    with open_engine(config) as admission:
        catalog = admission.catalog
        created, skipped = _load_courses(catalog, data.get("courses") or [])
        _apply_prerequisites(catalog, data.get("courses") or [])
        students = _load_students(
            admission.store,
            data.get("students") or [],
            config.admission.default_max_credits,
        )

    click.echo(f"Courses: {created} created, {skipped} already present")
    click.echo(f"Students: {students} created")


def _load_courses(catalog: Catalog, entries: list[dict[str, Any]]) -> tuple[int, int]:
    created = skipped = 0
    for entry in entries:
        try:
            catalog.get_course_by_code(entry["code"])
            skipped += 1
            continue
        except CourseNotFoundError:
            pass
        try:
            catalog.define_course(
                code=entry["code"],
                title=entry["title"],
                credits=int(entry["credits"]),
                description=entry.get("description"),
                course_type=CourseType(str(entry.get("type", "core")).lower()),
            )
        except (KeyError, ValueError) as e:
            raise click.ClickException(f"Invalid course entry {entry!r}: {e}") from e
        created += 1
    return created, skipped


def _apply_prerequisites(catalog: Catalog, entries: list[dict[str, Any]]) -> None:
    for entry in entries:
        codes = entry.get("prerequisites") or []
        if not codes:
            continue
        try:
            course = catalog.get_course_by_code(entry["code"])
            prerequisite_ids = [catalog.get_course_by_code(code).id for code in codes]
            catalog.set_prerequisites(course.id, prerequisite_ids)
        except CourseNotFoundError as e:
            raise click.ClickException(f"{entry['code']}: {e}") from e
        except CycleDetectedError as e:
            path = " -> ".join(catalog.get_course(cid).code for cid in e.cycle_path)
            raise click.ClickException(f"{entry['code']}: prerequisite cycle {path}") from e


def _load_students(
    store: RegistrarStore, entries: list[dict[str, Any]], default_max_credits: int
) -> int:
    created = 0
    for entry in entries:
        try:
            student = store.create_student(
                name=entry["name"],
                email=entry["email"],
                role=Role(str(entry.get("role", "student")).lower()),
                max_credits=int(entry.get("max_credits", default_max_credits)),
            )
        except StudentExistsError:
            logger.info("Student %s already present", sanitize_for_log(entry["email"]))
            continue
        except (KeyError, ValueError) as e:
            raise click.ClickException(f"Invalid student entry: {e}") from e
        logger.info("Created student %s (%s)", student.id, sanitize_for_log(student.email))
        created += 1
    return created


@main.command("check-graph")
@click.pass_obj
def check_graph(config: EngineConfig) -> None:
    """Verify the stored prerequisite graph is acyclic."""
    store = RegistrarStore(config.database.path, busy_timeout_ms=config.database.busy_timeout_ms)
    try:
        graph = Catalog(store).graph
    except CycleDetectedError as e:
        raise click.ClickException(str(e)) from e
    finally:
        store.close()
    click.echo(f"OK: {graph!r}")


@main.command("eligibility")
@click.argument("student_id")
@click.argument("course_code")
@click.pass_obj
def eligibility(config: EngineConfig, student_id: str, course_code: str) -> None:
    """Show whether COURSE_CODE is unlocked for STUDENT_ID."""
    with open_engine(config) as admission:
        try:
            course = admission.catalog.get_course_by_code(course_code)
        except CourseNotFoundError as e:
            raise click.ClickException(str(e)) from e
        outcome = admission.check_eligibility(student_id, course.id)
        if outcome.rejection is not None:
            raise click.ClickException(outcome.rejection.message)
        result = outcome.value
        missing = [admission.catalog.get_course(cid).code for cid in result.missing_prerequisites]

    if result.unlocked:
        click.echo(f"{course_code}: unlocked")
    else:
        click.echo(f"{course_code}: locked, missing {', '.join(missing)}")


@main.command("enroll")
@click.argument("student_id")
@click.argument("course_code")
@click.argument("semester")
@click.pass_obj
def enroll(config: EngineConfig, student_id: str, course_code: str, semester: str) -> None:
    """Enroll STUDENT_ID in COURSE_CODE for SEMESTER."""
    with open_engine(config) as admission:
        outcome = admission.enroll_by_code(Principal(student_id=student_id), course_code, semester)

    if outcome.rejection is not None:
        click.echo(f"Rejected ({outcome.rejection.kind}): {outcome.rejection.message}", err=True)
        sys.exit(1)
    click.echo(f"Enrolled: {outcome.value.id}")


@main.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, type=int, show_default=True)
@click.pass_obj
def serve(config: EngineConfig, host: str, port: int) -> None:
    """Run the REST API."""
    import uvicorn  # noqa: PLC0415

    from coursegate.api import create_app  # noqa: PLC0415

    uvicorn.run(create_app(config), host=host, port=port)


if __name__ == "__main__":
    main()
