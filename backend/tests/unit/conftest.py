"""
Unit test fixtures
"""

import pytest
import sys
from pathlib import Path

# Add backend to path for imports
backend_dir = Path(__file__).parent.parent.parent
sys.path.insert(0, str(backend_dir))

from core.models import Course, CourseType, StudentAcademicContext
from core.periods import AcademicCalendar, RegistrationPeriod


def build_course(course_id, **overrides):
    """Course factory; the code defaults to the part of the id before '_'."""
    data = {
        "id": course_id,
        "code": course_id.split("_")[0],
        "title": f"Course {course_id}",
        "department": "CESM",
        "level": 400,
        "credits": 3,
        "type": CourseType.COMPULSORY,
        "academic_year": "2024/2025",
        "semester": "First Semester",
        "prerequisites": [],
    }
    data.update(overrides)
    return Course(**data)


@pytest.fixture
def make_course():
    return build_course


@pytest.fixture
def student_context():
    """CESM level 400 student in 2024/2025 First Semester"""
    return StudentAcademicContext(
        department="CESM",
        level=400,
        current_academic_year="2024/2025",
        current_semester="First Semester"
    )


@pytest.fixture
def open_period():
    return RegistrationPeriod("2024/2025", "First Semester", is_open=True, deadline="2024-09-15")


@pytest.fixture
def closed_period():
    return RegistrationPeriod("2023/2024", "First Semester", is_open=False, deadline="2023-09-15")


@pytest.fixture
def calendar():
    return AcademicCalendar()


@pytest.fixture
def sample_courses():
    """Small catalog with a prerequisite chain across periods"""
    return [
        build_course(
            "CSE301_CESM_Y2324_S1",
            title="Introduction to Algorithms",
            level=300,
            academic_year="2023/2024",
        ),
        build_course(
            "CSE401_CESM_Y2425_S1",
            title="Mobile Application Development",
            prerequisites=["CSE301"],
        ),
        build_course("CSE409_CESM_Y2425_S1", title="Software Development and OOP"),
        build_course(
            "MGT403_CESM_Y2425_S1",
            title="Research Methodology",
            type=CourseType.GENERAL,
        ),
        build_course(
            "NES403_CESM_Y2425_S1",
            title="Modeling in Information System",
            type=CourseType.ELECTIVE,
        ),
        build_course(
            "CSE406_CESM_Y2425_S2",
            title="Algorithm and Data Structure II",
            semester="Second Semester",
            prerequisites=["CSE301"],
        ),
        build_course(
            "NES404_NES_Y2425_S1",
            title="Information System Security",
            department="NES",
        ),
        build_course(
            "ENG102_CESM_Y2425_S1",
            title="English Language",
            level=200,
            credits=1,
            type=CourseType.GENERAL,
        ),
    ]
