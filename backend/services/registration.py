"""
Course Registration Service

Runs a student's registration session: loads the registered course set,
pre-registers the default courses for new students, applies register/drop
decisions from the eligibility engine, and writes the set back after every
change.

A failed write after a register/drop rolls the in-memory change back and
raises RegistrationPersistenceError, so the session never reports a
registration the store does not hold.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from core.models import Course, CourseType, Decision, StudentAcademicContext
from core.periods import AcademicCalendar, RegistrationPeriod, get_academic_calendar
from services.catalog import CourseCatalog, get_course_catalog
from services.eligibility import STUDENT_ROLE, EligibilityEvaluator, get_eligibility_evaluator
from services.registration_store import (
    LoadStatus,
    RegistrationStore,
    RegistrationStoreError,
    get_registration_store,
)
from services.student import DEFAULT_ACADEMIC_YEAR, DEFAULT_SEMESTER


class RegistrationPersistenceError(Exception):
    """Raised when a register/drop could not be saved and was rolled back."""
    def __init__(self, message: str, student_id: str, course_id: str):
        super().__init__(message)
        self.student_id = student_id
        self.course_id = course_id


@dataclass
class RegistrationSession:
    """One student's registered course set for the duration of a session"""
    student_id: str
    role: str
    context: Optional[StudentAcademicContext]
    course_ids: List[str] = field(default_factory=list)
    load_status: LoadStatus = LoadStatus.MISSING
    load_error: Optional[str] = None
    auto_registered: List[str] = field(default_factory=list)

    @property
    def is_corrupted(self) -> bool:
        return self.load_status == LoadStatus.CORRUPTED

    def is_registered(self, course_id: str) -> bool:
        return course_id in self.course_ids


class RegistrationService:
    """Registration workflows on top of the eligibility engine."""

    def __init__(
        self,
        catalog: CourseCatalog,
        store: RegistrationStore,
        evaluator: Optional[EligibilityEvaluator] = None,
        calendar: Optional[AcademicCalendar] = None
    ):
        self.catalog = catalog
        self.store = store
        self.evaluator = evaluator or EligibilityEvaluator()
        self.calendar = calendar or AcademicCalendar()

    # --- Sessions ---

    def open_session(
        self,
        student_id: str,
        role: str = STUDENT_ROLE,
        context: Optional[StudentAcademicContext] = None
    ) -> RegistrationSession:
        """
        Load a student's registered courses.

        A student with no stored entry is pre-registered for the default
        courses of their current period. A corrupted entry opens an empty
        session flagged as corrupted and is left untouched in the store.
        """
        result = self.store.load(student_id)
        session = RegistrationSession(
            student_id=student_id,
            role=role,
            context=context,
            course_ids=list(result.course_ids),
            load_status=result.status,
            load_error=result.error
        )

        if result.status == LoadStatus.CORRUPTED:
            print(f"[REGISTRATION] Stored registrations for {student_id} are corrupted: {result.error}")
            return session

        if result.status == LoadStatus.MISSING and role == STUDENT_ROLE and context:
            defaults = [c.id for c in self.default_courses(context)]
            if defaults:
                try:
                    self.store.save(student_id, defaults)
                except RegistrationStoreError as e:
                    # Stays MISSING so the next session retries
                    print(f"[REGISTRATION] Could not save default registrations for {student_id}: {e}")
                else:
                    session.load_status = LoadStatus.LOADED
                session.course_ids = defaults
                session.auto_registered = list(defaults)
                print(f"[REGISTRATION] Auto-registered {len(defaults)} courses for {student_id}")

        return session

    def default_courses(self, context: StudentAcademicContext) -> List[Course]:
        """
        Courses a new student starts registered for: departmental Compulsory
        and Elective courses at their level, plus General courses at their
        level, all in their current period.
        """
        courses = []
        for course in self.catalog.courses_for_period(
            context.current_academic_year, context.current_semester
        ):
            if course.level != context.level:
                continue
            if course.type == CourseType.GENERAL:
                courses.append(course)
            elif course.department == context.department:
                courses.append(course)
        return courses

    # --- Periods ---

    def active_period(
        self,
        session: RegistrationSession,
        academic_year: Optional[str] = None,
        semester: Optional[str] = None
    ) -> RegistrationPeriod:
        """
        Resolve the registration period a session acts on.

        Defaults to the student's current period, then to the portal default.
        """
        if session.context:
            academic_year = academic_year or session.context.current_academic_year
            semester = semester or session.context.current_semester
        return self.calendar.resolve(
            academic_year or DEFAULT_ACADEMIC_YEAR,
            semester or DEFAULT_SEMESTER
        )

    def registered_courses(self, session: RegistrationSession) -> List[Course]:
        return self.catalog.resolve_ids(session.course_ids)

    # --- Mutations ---

    def register(
        self,
        session: RegistrationSession,
        course_id: str,
        academic_year: Optional[str] = None,
        semester: Optional[str] = None
    ) -> Decision:
        """
        Register a course if the eligibility engine allows it.

        Raises:
            CourseNotFoundError: If the course is not in the catalog
            RegistrationPersistenceError: If the change could not be saved
        """
        course = self.catalog.require(course_id)
        period = self.active_period(session, academic_year, semester)

        decision = self.evaluator.can_register(
            course,
            session.context,
            self.registered_courses(session),
            period,
            role=session.role
        )
        if not decision.allowed:
            print(f"[REGISTRATION] {session.student_id} denied {course.id}: {decision.reason.value}")
            return decision

        session.course_ids.append(course.id)
        self._persist(session, course.id, rollback=lambda: session.course_ids.remove(course.id))

        print(f"[REGISTRATION] {session.student_id} registered {course.id}")
        decision.message = (
            f"{course.code} - {course.title} has been successfully registered for "
            f"{course.semester}, {course.academic_year}."
        )
        return decision

    def drop(
        self,
        session: RegistrationSession,
        course_id: str,
        academic_year: Optional[str] = None,
        semester: Optional[str] = None
    ) -> Decision:
        """
        Drop a registered course if the eligibility engine allows it.

        Raises:
            CourseNotFoundError: If the course is not in the catalog
            RegistrationPersistenceError: If the change could not be saved
        """
        course = self.catalog.require(course_id)
        period = self.active_period(session, academic_year, semester)

        decision = self.evaluator.can_drop(course, session.course_ids, period)
        if not decision.allowed:
            print(f"[REGISTRATION] {session.student_id} denied drop of {course.id}: {decision.reason.value}")
            return decision

        index = session.course_ids.index(course.id)
        session.course_ids.pop(index)
        self._persist(session, course.id, rollback=lambda: session.course_ids.insert(index, course.id))

        print(f"[REGISTRATION] {session.student_id} dropped {course.id}")
        decision.message = f"{course.code} - {course.title} has been dropped."
        return decision

    def _persist(self, session: RegistrationSession, course_id: str, rollback) -> None:
        try:
            self.store.save(session.student_id, session.course_ids)
        except RegistrationStoreError as e:
            rollback()
            print(f"[REGISTRATION] Rolled back change to {course_id} for {session.student_id}: {e}")
            raise RegistrationPersistenceError(
                f"Could not save registration change for {course_id}. Please try again.",
                student_id=session.student_id,
                course_id=course_id
            ) from e
        session.load_status = LoadStatus.LOADED
        session.load_error = None

    # --- Summaries ---

    def summary(
        self,
        session: RegistrationSession,
        academic_year: Optional[str] = None,
        semester: Optional[str] = None,
        profile: Optional[Dict[str, Any]] = None,
        today: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Registration summary for one period (the data behind Form B).
        """
        period = self.active_period(session, academic_year, semester)
        courses = [
            c for c in self.registered_courses(session)
            if c.in_period(period.academic_year, period.semester)
        ]
        load = self.evaluator.compute_credit_load(courses, period.academic_year, period.semester)
        status = self.evaluator.credit_status(load, period)

        profile = profile or {}
        context = session.context

        return {
            "student": {
                "id": session.student_id,
                "name": profile.get("displayName"),
                "matricule": profile.get("matricule"),
                "department": context.department if context else profile.get("department"),
                "level": context.level if context else profile.get("level"),
            },
            "period": period.to_dict(today),
            "courses": [c.to_dict() for c in courses],
            "total_credits": load,
            "credit_status": status.to_dict(),
            "min_credits": self.evaluator.min_credits,
            "max_credits": self.evaluator.max_credits,
        }


_registration_service: Optional[RegistrationService] = None


def get_registration_service() -> RegistrationService:
    """Get singleton instance of RegistrationService"""
    global _registration_service
    if _registration_service is None:
        _registration_service = RegistrationService(
            catalog=get_course_catalog(),
            store=get_registration_store(),
            evaluator=get_eligibility_evaluator(),
            calendar=get_academic_calendar()
        )
    return _registration_service
