"""
FastAPI Server for the Course Registration API

Provides REST endpoints for the registration pages: the course catalog,
registration periods, and each student's registered courses.

Usage:
    python server.py                    # Run server on port 8000
    python server.py --port 3001        # Custom port
"""

import argparse
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from core.auth import AuthenticatedUser, get_current_admin, get_current_user, verify_user_access
from core.config import COURSE_CATALOG_SOURCE, REGISTRATION_STORE, initialize_firebase
from core.models import Decision
from core.periods import AcademicCalendar, get_academic_calendar
from services.cache import get_cache
from services.catalog import CourseCatalog, CourseNotFoundError, get_course_catalog
from services.registration import (
    RegistrationPersistenceError,
    RegistrationService,
    RegistrationSession,
    get_registration_service,
)
from services.student import StudentService, context_from_profile, get_student_service


# Pydantic Models (API Response Schemas)

class CourseResponse(BaseModel):
    id: str
    code: str
    title: str
    department: str
    level: int
    credits: int
    type: str
    academicYear: str
    semester: str
    prerequisites: List[str] = []
    schedule: Optional[str] = ""
    description: Optional[str] = ""
    lecturerId: Optional[str] = None
    lecturerName: Optional[str] = None


class CourseListResponse(BaseModel):
    courses: List[CourseResponse]
    total: int


class PeriodResponse(BaseModel):
    academic_year: str
    semester: str
    is_open: bool
    deadline: str
    display_name: str
    days_to_deadline: Optional[int] = None
    deadline_approaching: bool = False


class PeriodListResponse(BaseModel):
    periods: List[PeriodResponse]
    total: int


class RegistrationResponse(BaseModel):
    student_id: str
    course_ids: List[str]
    courses: List[CourseResponse]
    load_status: str
    corrupted: bool
    auto_registered: List[str] = []


class DecisionResponse(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    message: str
    details: Dict[str, Any] = {}
    registration: Optional[RegistrationResponse] = None


class PeriodUpdateRequest(BaseModel):
    academic_year: str
    semester: str


class CatalogRefreshResponse(BaseModel):
    catalog_courses: int
    cache_entries_invalidated: int


class HealthResponse(BaseModel):
    status: str
    catalog_source: str
    catalog_courses: int
    registration_store: str
    open_periods: List[str]
    redis: str


# App Lifespan (startup/shutdown)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown"""
    if REGISTRATION_STORE == "firestore" or COURSE_CATALOG_SOURCE == "firestore":
        print("[Server] Initializing Firebase...")
        initialize_firebase()

    print("[Server] Ready!")

    yield

    print("[Server] Shutdown complete")


# FastAPI App

app = FastAPI(
    title="Course Registration API",
    description="Course registration eligibility and registered-course management",
    version="1.0.0",
    lifespan=lifespan
)

# CORS - Allow frontend origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:9002",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:9002",
        # Add your production frontend URL here
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Dependencies

def get_catalog() -> CourseCatalog:
    return get_course_catalog()


def get_calendar() -> AcademicCalendar:
    return get_academic_calendar()


def get_service() -> RegistrationService:
    return get_registration_service()


def get_students() -> StudentService:
    return get_student_service()


# API Endpoints

@app.get("/api/health", response_model=HealthResponse)
async def api_health(
    catalog: CourseCatalog = Depends(get_catalog),
    calendar: AcademicCalendar = Depends(get_calendar)
):
    """API health check"""
    redis_status = "connected" if get_cache().is_connected else "unavailable"

    return HealthResponse(
        status="ok",
        catalog_source=COURSE_CATALOG_SOURCE,
        catalog_courses=len(catalog),
        registration_store=REGISTRATION_STORE,
        open_periods=[p.display_name for p in calendar.open_periods()],
        redis=redis_status
    )


@app.get("/api/periods", response_model=PeriodListResponse)
async def list_periods(
    academic_year: Optional[str] = Query(None, description="Academic year, e.g. 2024/2025"),
    semester: Optional[str] = Query(None, description="Semester, e.g. First Semester"),
    calendar: AcademicCalendar = Depends(get_calendar)
):
    """
    Resolve a registration period, or list the open ones when no
    period is given.
    """
    if academic_year and semester:
        periods = [calendar.resolve(academic_year, semester)]
    elif academic_year or semester:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="academic_year and semester must be given together"
        )
    else:
        periods = calendar.open_periods()

    return PeriodListResponse(
        periods=[PeriodResponse(**p.to_dict()) for p in periods],
        total=len(periods)
    )


@app.get("/api/courses", response_model=CourseListResponse)
async def list_courses(
    department: Optional[str] = Query(None, description="Department code (e.g., CESM)"),
    level: Optional[str] = Query(None, description="Level (e.g., 400)"),
    academic_year: Optional[str] = Query(None, description="Academic year"),
    semester: Optional[str] = Query(None, description="Semester"),
    course_type: Optional[str] = Query(None, description="Compulsory, Elective or General"),
    q: Optional[str] = Query(None, description="Search by title or code"),
    catalog: CourseCatalog = Depends(get_catalog)
):
    """
    List catalog courses. Filters set to "all" are ignored.
    """
    courses = catalog.filter_courses(
        department=department,
        level=level,
        academic_year=academic_year,
        semester=semester,
        course_type=course_type,
        search=q
    )
    return CourseListResponse(
        courses=[CourseResponse(**c.to_dict()) for c in courses],
        total=len(courses)
    )


@app.get("/api/courses/{course_id}", response_model=CourseResponse)
async def get_course(course_id: str, catalog: CourseCatalog = Depends(get_catalog)):
    """Get a single course by id."""
    course = catalog.get(course_id)
    if not course:
        raise HTTPException(status_code=404, detail=f"Course not found: {course_id}")
    return CourseResponse(**course.to_dict())


@app.get("/api/registrations/{student_id}", response_model=RegistrationResponse)
async def get_registrations(
    student_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: RegistrationService = Depends(get_service),
    students: StudentService = Depends(get_students)
):
    """
    Get a student's registered courses.

    A student opening their registrations for the first time is
    pre-registered for the default courses of their current period.
    """
    _require_access(user, student_id)
    session, _ = _open_session(student_id, user, service, students)
    return _format_session(session, service)


@app.post("/api/registrations/{student_id}/courses/{course_id}", response_model=DecisionResponse)
async def register_course(
    student_id: str,
    course_id: str,
    academic_year: Optional[str] = Query(None),
    semester: Optional[str] = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    service: RegistrationService = Depends(get_service),
    students: StudentService = Depends(get_students)
):
    """Register a course for a student."""
    _require_access(user, student_id, write=True)
    session, _ = _open_session(student_id, user, service, students)

    try:
        decision = service.register(session, course_id, academic_year, semester)
    except CourseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RegistrationPersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    return _decision_response(decision, session, service)


@app.delete("/api/registrations/{student_id}/courses/{course_id}", response_model=DecisionResponse)
async def drop_course(
    student_id: str,
    course_id: str,
    academic_year: Optional[str] = Query(None),
    semester: Optional[str] = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    service: RegistrationService = Depends(get_service),
    students: StudentService = Depends(get_students)
):
    """Drop a registered course for a student."""
    _require_access(user, student_id, write=True)
    session, _ = _open_session(student_id, user, service, students)

    try:
        decision = service.drop(session, course_id, academic_year, semester)
    except CourseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RegistrationPersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    return _decision_response(decision, session, service)


@app.get("/api/registrations/{student_id}/summary")
async def registration_summary(
    student_id: str,
    academic_year: Optional[str] = Query(None),
    semester: Optional[str] = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    service: RegistrationService = Depends(get_service),
    students: StudentService = Depends(get_students)
):
    """
    Registration summary (Form B) for one period, defaulting to the
    student's current period.
    """
    _require_access(user, student_id)
    session, profile = _open_session(student_id, user, service, students)
    return service.summary(session, academic_year, semester, profile=profile)


@app.put("/api/students/{student_id}/period")
async def update_student_period(
    student_id: str,
    body: PeriodUpdateRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    students: StudentService = Depends(get_students)
):
    """Move a student to a new academic period."""
    _require_access(user, student_id, write=True)

    try:
        profile = students.update_current_period(student_id, body.academic_year, body.semester)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if profile is None:
        raise HTTPException(status_code=404, detail=f"Student not found: {student_id}")

    return profile


@app.post("/api/catalog/refresh", response_model=CatalogRefreshResponse)
async def refresh_catalog(
    admin: AuthenticatedUser = Depends(get_current_admin),
    service: RegistrationService = Depends(get_service)
):
    """
    Reload the course catalog from its source (admin only).
    """
    invalidated = get_cache().invalidate_catalog()
    catalog = get_course_catalog(refresh=True)
    service.catalog = catalog
    print(f"[Server] Catalog refreshed by {admin.uid}: {len(catalog)} courses")

    return CatalogRefreshResponse(
        catalog_courses=len(catalog),
        cache_entries_invalidated=invalidated
    )


# Helpers

def _require_access(user: AuthenticatedUser, student_id: str, write: bool = False):
    if not verify_user_access(user, student_id, write=write):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this student's registrations"
        )


def _open_session(
    student_id: str,
    user: AuthenticatedUser,
    service: RegistrationService,
    students: StudentService
):
    """Open a registration session acting as the authenticated user."""
    profile = students.get_profile(student_id)
    context = context_from_profile(profile)
    session = service.open_session(student_id, role=user.role.value, context=context)
    return session, profile


def _format_session(session: RegistrationSession, service: RegistrationService) -> RegistrationResponse:
    return RegistrationResponse(
        student_id=session.student_id,
        course_ids=list(session.course_ids),
        courses=[CourseResponse(**c.to_dict()) for c in service.registered_courses(session)],
        load_status=session.load_status.value,
        corrupted=session.is_corrupted,
        auto_registered=list(session.auto_registered)
    )


def _decision_response(
    decision: Decision,
    session: RegistrationSession,
    service: RegistrationService
) -> DecisionResponse:
    """Allowed decisions return 200; denials return 409 with the reason."""
    if not decision.allowed:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=decision.to_dict())

    return DecisionResponse(
        **decision.to_dict(),
        registration=_format_session(session, service)
    )


# Main

def main():
    import uvicorn

    parser = argparse.ArgumentParser(description="Course Registration API Server")
    parser.add_argument("--port", type=int, default=8000, help="Port to run on")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    args = parser.parse_args()

    print(f"[Server] Starting on http://{args.host}:{args.port}")
    print(f"[Server] Registration store: {REGISTRATION_STORE}, catalog: {COURSE_CATALOG_SOURCE}")

    uvicorn.run(
        "server:app" if args.reload else app,
        host=args.host,
        port=args.port,
        reload=args.reload
    )


if __name__ == "__main__":
    main()
