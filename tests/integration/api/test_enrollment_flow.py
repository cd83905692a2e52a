"""Integration tests for the full API application."""

import pytest
from fastapi.testclient import TestClient

from coursegate.api.app import create_app
from coursegate.catalog import Catalog
from coursegate.config import DatabaseConfig, EngineConfig
from coursegate.store import EnrollmentStatus, RegistrarStore

FALL = "Fall 2024"


@pytest.fixture
def seeded(temp_db_path: str):
    """Seed a student and a two-course chain, then close the seeding store."""
    store = RegistrarStore(temp_db_path)
    catalog = Catalog(store)
    student = store.create_student(name="Ada", email="ada@example.edu")
    intro = catalog.define_course(code="CSE101", title="Intro", credits=3)
    algo = catalog.define_course(
        code="CSE302", title="Algorithms", credits=4, prerequisite_ids=[intro.id]
    )
    store.close()
    return {"student": student.id, "intro": intro.id, "algo": algo.id}


@pytest.fixture
def client(temp_db_path: str, seeded):
    """Create a test client over the seeded temporary database."""
    app = create_app(EngineConfig(database=DatabaseConfig(path=temp_db_path)))
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.mark.integration
class TestEnrollmentFlow:
    """Eligibility, enrollment and unlock across the whole stack."""

    def test_locked_then_unlocked(self, client: TestClient, temp_db_path: str, seeded) -> None:
        """Enroll in CSE101, complete it, then enroll in CSE302."""
        headers = {"X-Principal-Id": seeded["student"]}

        locked = client.get(
            f"/api/v1/students/{seeded['student']}/eligibility/{seeded['algo']}"
        )
        assert locked.json()["data"]["missing_prerequisites"] == [seeded["intro"]]

        refused = client.post(
            "/api/v1/enrollments",
            json={"course_code": "CSE302", "semester": FALL},
            headers=headers,
        )
        assert refused.status_code == 400

        first = client.post(
            "/api/v1/enrollments",
            json={"course_code": "CSE101", "semester": "Spring 2024"},
            headers=headers,
        )
        assert first.status_code == 201

        # Grading runs out-of-band against the same database
        grading = RegistrarStore(temp_db_path)
        grading.transition_enrollment(first.json()["data"]["id"], EnrollmentStatus.COMPLETED)
        grading.close()

        unlocked = client.get(
            f"/api/v1/students/{seeded['student']}/eligibility/{seeded['algo']}"
        )
        assert unlocked.json()["data"]["unlocked"] is True

        admitted = client.post(
            "/api/v1/enrollments",
            json={"course_code": "CSE302", "semester": FALL},
            headers=headers,
        )
        assert admitted.status_code == 201

        listed = client.get(
            "/api/v1/enrollments", params={"semester": FALL}, headers=headers
        ).json()["data"]
        assert [e["course_id"] for e in listed] == [seeded["algo"]]

    def test_catalog_is_loaded_on_startup(self, client: TestClient, seeded) -> None:
        """Courses seeded before startup are served."""
        response = client.get("/api/v1/courses")

        assert response.status_code == 200
        assert [c["code"] for c in response.json()["data"]] == ["CSE101", "CSE302"]

    def test_cycle_check_against_stored_graph(self, client: TestClient, seeded) -> None:
        """Making CSE101 require CSE302 would close a cycle."""
        response = client.post(
            f"/api/v1/courses/{seeded['intro']}/prerequisites/validate",
            json={"prerequisite_ids": [seeded["algo"]]},
        )

        assert response.status_code == 409
        assert response.json()["detail"]["cycle_path"] == [
            seeded["intro"],
            seeded["algo"],
            seeded["intro"],
        ]


@pytest.mark.integration
class TestOpenAPIDocs:
    """Integration test for OpenAPI documentation."""

    def test_openapi_json_available(self, client: TestClient) -> None:
        """/openapi.json lists the engine routes."""
        response = client.get("/openapi.json")

        assert response.status_code == 200
        paths = response.json()["paths"]
        assert "/api/v1/enrollments" in paths
        assert "/api/v1/courses" in paths
        assert "/api/v1/students/{student_id}/eligibility/{course_id}" in paths
