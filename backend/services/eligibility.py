"""
Registration Eligibility Engine

Decides whether a student may register for or drop a course in the open
registration period, and computes credit loads.

Register checks, in order (first failure wins):
1. Registration period is open
2. Course belongs to the open period
3. Course is not already registered
4. Academic eligibility (students only): General courses are level-scoped,
   Compulsory/Elective courses need matching department and level
5. Every prerequisite code was registered in a strictly earlier period
6. Credit load for the period stays within MAX_CREDITS

Drop checks, in order:
1. Course is registered
2. Registration period is open
3. Course belongs to the open period

Every rule violation is returned as a denied Decision, never raised.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Optional, Sequence

from core.config import MIN_CREDITS, MAX_CREDITS
from core.models import Course, CourseType, Decision, DenialReason, StudentAcademicContext
from core.periods import RegistrationPeriod, period_precedes

STUDENT_ROLE = "student"


@dataclass
class CreditStatus:
    """Advisory credit-load label for a period"""
    status: str  # closed, under, within, over
    variant: str  # info, warning, success, destructive
    credits: int
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class EligibilityEvaluator:
    """
    Rules engine for course registration.

    Stateless: every call takes the catalog courses it needs as arguments.
    """

    def __init__(self, min_credits: int = MIN_CREDITS, max_credits: int = MAX_CREDITS):
        self.min_credits = min_credits
        self.max_credits = max_credits

    # --- Credit Load ---

    def compute_credit_load(
        self,
        registered: Iterable[Course],
        academic_year: str,
        semester: str
    ) -> int:
        """Sum of credits over registered courses in the given period"""
        return sum(
            course.credits for course in registered
            if course.in_period(academic_year, semester)
        )

    def credit_status(self, load: int, period: RegistrationPeriod) -> CreditStatus:
        """
        Label a period's credit load.

        Only the upper bound is enforced by can_register; this label never
        blocks anything.
        """
        if not period.is_open:
            return CreditStatus(
                status="closed",
                variant="info",
                credits=load,
                message=f"Registration for {period.display_name} is closed. "
                        f"Credit load for this period: {load}."
            )

        if load < self.min_credits:
            return CreditStatus(
                status="under",
                variant="warning",
                credits=load,
                message=f"You are under the minimum credit load ({self.min_credits} credits) "
                        f"for {period.display_name}. Current: {load}."
            )

        if load > self.max_credits:
            return CreditStatus(
                status="over",
                variant="destructive",
                credits=load,
                message=f"You are over the maximum credit load ({self.max_credits} credits) "
                        f"for {period.display_name}. Current: {load}."
            )

        return CreditStatus(
            status="within",
            variant="success",
            credits=load,
            message=f"Total credits for {period.display_name} is within the allowed range "
                    f"({self.min_credits}-{self.max_credits}). Current: {load}."
        )

    # --- Prerequisites ---

    def missing_prerequisites(self, course: Course, registered: Iterable[Course]) -> List[str]:
        """
        Prerequisite codes not yet satisfied for a course.

        A prerequisite is met by a registered course with the same code whose
        period strictly precedes the candidate's period. A registration in the
        same period does not count.
        """
        if not course.prerequisites:
            return []

        earlier_codes = {
            r.code for r in registered
            if period_precedes(r.period, course.period)
        }

        return [code for code in course.prerequisites if code not in earlier_codes]

    # --- Academic Eligibility ---

    def _check_academic_eligibility(
        self,
        course: Course,
        context: StudentAcademicContext
    ) -> Optional[Decision]:
        if course.type == CourseType.GENERAL:
            if course.level != context.level:
                return Decision.deny(
                    DenialReason.NOT_ALLOWED,
                    f"You can only register for General courses at your current level "
                    f"({context.level}). This course is Level {course.level}.",
                    course_level=course.level,
                    student_level=context.level
                )
            return None

        if course.department != context.department or course.level != context.level:
            return Decision.deny(
                DenialReason.NOT_ALLOWED,
                f"You can only register for courses within your department "
                f"({context.department}) and at your current level ({context.level}). "
                f"This course is for {course.department}, Level {course.level}.",
                course_department=course.department,
                course_level=course.level,
                student_department=context.department,
                student_level=context.level
            )

        return None

    # --- Decisions ---

    def can_register(
        self,
        course: Course,
        context: Optional[StudentAcademicContext],
        registered: Sequence[Course],
        period: RegistrationPeriod,
        role: str = STUDENT_ROLE
    ) -> Decision:
        """
        Decide whether a course may be registered.

        Args:
            course: Candidate course
            context: Student's academic context (None for staff actors)
            registered: The student's registered courses, all periods
            period: The open registration period
            role: Actor role; only students are held to department/level rules

        Returns:
            Allowed, or Denied with the first failing reason
        """
        if not period.is_open:
            return Decision.deny(
                DenialReason.REGISTRATION_CLOSED,
                f"Course registration for {period.display_name} is currently closed.",
                academic_year=period.academic_year,
                semester=period.semester
            )

        if not course.in_period(period.academic_year, period.semester):
            return Decision.deny(
                DenialReason.REGISTRATION_MISMATCH,
                f"You can only register for courses in the currently open registration "
                f"period: {period.display_name}. This course is for "
                f"{course.semester}, {course.academic_year}.",
                course_period=list(course.period),
                open_period=list(period.period)
            )

        if any(r.id == course.id for r in registered):
            return Decision.deny(
                DenialReason.ALREADY_REGISTERED,
                f"You are already registered for {course.code} - {course.title}.",
                course_id=course.id
            )

        if role == STUDENT_ROLE:
            if context is None:
                return Decision.deny(
                    DenialReason.PROFILE_ERROR,
                    "Your academic profile is not fully loaded. Cannot register courses."
                )
            denial = self._check_academic_eligibility(course, context)
            if denial is not None:
                return denial

        missing = self.missing_prerequisites(course, registered)
        if missing:
            return Decision.deny(
                DenialReason.PREREQUISITES_NOT_MET,
                f"Cannot register {course.code}. Missing prerequisites: {', '.join(missing)}. "
                f"Prerequisites must be completed in a prior academic session (year or semester).",
                missing_prerequisites=missing
            )

        current_load = self.compute_credit_load(registered, period.academic_year, period.semester)
        if current_load + course.credits > self.max_credits:
            return Decision.deny(
                DenialReason.CREDIT_LIMIT_EXCEEDED,
                f"Cannot register. Exceeds maximum credit load of {self.max_credits} for "
                f"{period.display_name}. Current credits for this period: {current_load}. "
                f"Course credits: {course.credits}",
                current_credits=current_load,
                course_credits=course.credits,
                max_credits=self.max_credits
            )

        return Decision.allow(
            f"{course.code} - {course.title} can be registered for {period.display_name}."
        )

    def can_drop(
        self,
        course: Course,
        registered_ids: Iterable[str],
        period: RegistrationPeriod
    ) -> Decision:
        """Decide whether a registered course may be dropped."""
        if course.id not in set(registered_ids):
            return Decision.deny(
                DenialReason.NOT_REGISTERED,
                f"You are not registered for {course.code} - {course.title}.",
                course_id=course.id
            )

        if not period.is_open:
            return Decision.deny(
                DenialReason.REGISTRATION_CLOSED,
                f"Cannot drop courses for {period.display_name} as registration is closed.",
                academic_year=period.academic_year,
                semester=period.semester
            )

        if not course.in_period(period.academic_year, period.semester):
            return Decision.deny(
                DenialReason.DROP_MISMATCH,
                f"You can only drop courses from the currently open registration period: "
                f"{period.display_name}.",
                course_period=list(course.period),
                open_period=list(period.period)
            )

        return Decision.allow(f"{course.code} - {course.title} can be dropped.")


# Singleton instance
_evaluator: Optional[EligibilityEvaluator] = None


def get_eligibility_evaluator() -> EligibilityEvaluator:
    """Get singleton instance of EligibilityEvaluator"""
    global _evaluator
    if _evaluator is None:
        _evaluator = EligibilityEvaluator()
    return _evaluator
