"""
Tests for server.py - Registration API endpoints
"""

import pytest
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from core.auth import AuthenticatedUser, UserRole, get_current_admin, get_current_user
from core.periods import AcademicCalendar
from services.catalog import CourseCatalog
from services.eligibility import EligibilityEvaluator
from services.registration import RegistrationService
from services.registration_store import InMemoryRegistrationStore, RegistrationStoreError
import server
from server import app

STUDENT_PROFILE = {
    "uid": "stu1",
    "role": "student",
    "displayName": "Ada Ngum",
    "matricule": "UBa24E0001",
    "department": "CESM",
    "level": 400,
    "currentAcademicYear": "2024/2025",
    "currentSemester": "First Semester",
}


def make_user(uid="stu1", role=UserRole.STUDENT):
    return AuthenticatedUser(uid=uid, email=f"{uid}@portal.edu", email_verified=True, role=role)


@pytest.fixture
def store():
    return InMemoryRegistrationStore()


@pytest.fixture
def catalog(sample_courses):
    return CourseCatalog(sample_courses)


@pytest.fixture
def students():
    students = MagicMock()
    students.get_profile.return_value = dict(STUDENT_PROFILE)
    return students


@pytest.fixture
def current_user():
    return {"user": make_user()}


@pytest.fixture
def client(catalog, store, students, current_user):
    service = RegistrationService(
        catalog=catalog,
        store=store,
        evaluator=EligibilityEvaluator(min_credits=18, max_credits=24),
        calendar=AcademicCalendar()
    )

    async def mock_get_current_user():
        return current_user["user"]

    app.dependency_overrides[server.get_catalog] = lambda: catalog
    app.dependency_overrides[server.get_calendar] = lambda: AcademicCalendar()
    app.dependency_overrides[server.get_service] = lambda: service
    app.dependency_overrides[server.get_students] = lambda: students
    app.dependency_overrides[get_current_user] = mock_get_current_user

    yield TestClient(app)

    app.dependency_overrides.clear()


class TestPublicEndpoints:
    """Tests for catalog and period endpoints"""

    def test_health(self, client):
        mock_cache = MagicMock()
        mock_cache.is_connected = False
        with patch('server.get_cache', return_value=mock_cache):
            response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["catalog_courses"] == 8
        assert data["open_periods"] == ["First Semester, 2024/2025", "Second Semester, 2024/2025"]
        assert data["redis"] == "unavailable"

    def test_open_periods(self, client):
        response = client.get("/api/periods")

        assert response.status_code == 200
        assert response.json()["total"] == 2

    def test_resolve_period(self, client):
        response = client.get("/api/periods", params={
            "academic_year": "2023/2024", "semester": "First Semester"
        })

        period = response.json()["periods"][0]
        assert period["is_open"] is False
        assert period["deadline"] == "2023-09-15"
        assert period["days_to_deadline"] is None

    def test_period_needs_both_params(self, client):
        response = client.get("/api/periods", params={"academic_year": "2023/2024"})
        assert response.status_code == 400

    def test_list_courses_filtered(self, client):
        response = client.get("/api/courses", params={
            "department": "CESM", "level": "400", "semester": "First Semester", "course_type": "all"
        })

        assert response.status_code == 200
        ids = [c["id"] for c in response.json()["courses"]]
        assert "CSE401_CESM_Y2425_S1" in ids
        assert "NES404_NES_Y2425_S1" not in ids

    def test_search_courses(self, client):
        response = client.get("/api/courses", params={"q": "algorithms"})
        assert response.json()["total"] == 1

    def test_get_course(self, client):
        response = client.get("/api/courses/CSE401_CESM_Y2425_S1")
        assert response.status_code == 200
        assert response.json()["prerequisites"] == ["CSE301"]

    def test_get_course_not_found(self, client):
        assert client.get("/api/courses/NOPE").status_code == 404


class TestRegistrationEndpoints:
    """Tests for the registration endpoints"""

    def test_first_visit_auto_registers(self, client, store):
        response = client.get("/api/registrations/stu1")

        assert response.status_code == 200
        data = response.json()
        assert data["load_status"] == "loaded"
        assert len(data["auto_registered"]) == 4
        assert store.raw("stu1") is not None

    def test_corrupted_entry_reported(self, client, store):
        store._data["allRegisteredCourses_stu1"] = "oops"

        data = client.get("/api/registrations/stu1").json()

        assert data["corrupted"] is True
        assert data["course_ids"] == []
        assert store.raw("stu1") == "oops"

    def test_register_course(self, client, store):
        store.save("stu1", ["CSE301_CESM_Y2324_S1"])

        response = client.post("/api/registrations/stu1/courses/CSE401_CESM_Y2425_S1")

        assert response.status_code == 200
        data = response.json()
        assert data["allowed"] is True
        assert "CSE401_CESM_Y2425_S1" in data["registration"]["course_ids"]

    def test_register_denied_is_409(self, client, store):
        store.save("stu1", [])

        response = client.post("/api/registrations/stu1/courses/CSE401_CESM_Y2425_S1")

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["reason"] == "Prerequisites Not Met"
        assert detail["details"]["missing_prerequisites"] == ["CSE301"]

    def test_student_other_department_is_409(self, client, store):
        store.save("stu1", [])

        response = client.post("/api/registrations/stu1/courses/NES404_NES_Y2425_S1")

        assert response.status_code == 409
        assert response.json()["detail"]["reason"] == "Registration Not Allowed"
        assert store.load("stu1").course_ids == []

    def test_register_unknown_course_is_404(self, client, store):
        store.save("stu1", [])
        response = client.post("/api/registrations/stu1/courses/NOPE")
        assert response.status_code == 404

    def test_register_store_failure_is_503(self, client, store):
        store.save("stu1", [])

        with patch.object(store, 'save', side_effect=RegistrationStoreError("down")):
            response = client.post("/api/registrations/stu1/courses/CSE409_CESM_Y2425_S1")

        assert response.status_code == 503
        assert store.load("stu1").course_ids == []

    def test_drop_course(self, client, store):
        store.save("stu1", ["CSE409_CESM_Y2425_S1"])

        response = client.delete("/api/registrations/stu1/courses/CSE409_CESM_Y2425_S1")

        assert response.status_code == 200
        assert store.load("stu1").course_ids == []

    def test_drop_unregistered_is_409(self, client, store):
        store.save("stu1", [])

        response = client.delete("/api/registrations/stu1/courses/CSE409_CESM_Y2425_S1")

        assert response.status_code == 409
        assert response.json()["detail"]["reason"] == "Not Registered"

    def test_summary(self, client, store):
        store.save("stu1", ["CSE409_CESM_Y2425_S1", "MGT403_CESM_Y2425_S1"])

        response = client.get("/api/registrations/stu1/summary")

        assert response.status_code == 200
        data = response.json()
        assert data["total_credits"] == 6
        assert data["student"]["matricule"] == "UBa24E0001"
        assert data["credit_status"]["status"] == "under"


class TestAccessControl:
    """Tests for who may read or change registrations"""

    def test_other_student_forbidden(self, client, current_user):
        current_user["user"] = make_user("stu2")
        assert client.get("/api/registrations/stu1").status_code == 403

    def test_lecturer_can_read(self, client, current_user, store):
        current_user["user"] = make_user("lect1", UserRole.LECTURER)
        store.save("stu1", [])

        assert client.get("/api/registrations/stu1").status_code == 200

    def test_lecturer_cannot_register(self, client, current_user, store):
        current_user["user"] = make_user("lect1", UserRole.LECTURER)
        store.save("stu1", [])

        response = client.post("/api/registrations/stu1/courses/CSE409_CESM_Y2425_S1")

        assert response.status_code == 403

    def test_admin_skips_department_rule(self, client, current_user, store):
        current_user["user"] = make_user("adm1", UserRole.ADMIN)
        store.save("stu1", [])

        response = client.post("/api/registrations/stu1/courses/NES404_NES_Y2425_S1")

        assert response.status_code == 200

    def test_admin_view_does_not_auto_register(self, client, current_user, store):
        current_user["user"] = make_user("adm1", UserRole.ADMIN)

        data = client.get("/api/registrations/stu1").json()

        assert data["load_status"] == "missing"
        assert store.raw("stu1") is None


class TestStudentAndCatalogAdmin:
    """Tests for period updates and catalog refresh"""

    def test_update_period(self, client, students):
        students.update_current_period.return_value = {"uid": "stu1", "currentSemester": "Second Semester"}

        response = client.put("/api/students/stu1/period", json={
            "academic_year": "2024/2025", "semester": "Second Semester"
        })

        assert response.status_code == 200
        students.update_current_period.assert_called_once_with("stu1", "2024/2025", "Second Semester")

    def test_update_period_invalid_semester(self, client, students):
        students.update_current_period.side_effect = ValueError("Invalid semester")

        response = client.put("/api/students/stu1/period", json={
            "academic_year": "2024/2025", "semester": "Summer"
        })

        assert response.status_code == 400

    def test_update_period_unknown_student(self, client, students):
        students.update_current_period.return_value = None

        response = client.put("/api/students/stu1/period", json={
            "academic_year": "2024/2025", "semester": "First Semester"
        })

        assert response.status_code == 404

    def test_catalog_refresh_requires_admin(self, client):
        assert client.post("/api/catalog/refresh").status_code == 403

    def test_catalog_refresh(self, client, catalog):
        async def mock_get_current_admin():
            return make_user("adm1", UserRole.ADMIN)

        app.dependency_overrides[get_current_admin] = mock_get_current_admin
        mock_cache = MagicMock()
        mock_cache.invalidate_catalog.return_value = 5

        with patch('server.get_cache', return_value=mock_cache), \
             patch('server.get_course_catalog', return_value=catalog) as mock_get_catalog:
            response = client.post("/api/catalog/refresh")

        assert response.status_code == 200
        assert response.json() == {"catalog_courses": 8, "cache_entries_invalidated": 5}
        mock_get_catalog.assert_called_once_with(refresh=True)
