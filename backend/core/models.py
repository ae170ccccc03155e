"""
Registration Data Models

Course records, the student's academic context, and the Decision value
returned by every register/drop evaluation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from core.periods import parse_start_year


class CourseType(str, Enum):
    """Course categories in the catalog"""
    COMPULSORY = "Compulsory"
    ELECTIVE = "Elective"
    GENERAL = "General"


class DenialReason(str, Enum):
    """Why a register or drop action was refused"""
    REGISTRATION_CLOSED = "Registration Closed"
    REGISTRATION_MISMATCH = "Registration Mismatch"
    ALREADY_REGISTERED = "Already Registered"
    NOT_ALLOWED = "Registration Not Allowed"
    PREREQUISITES_NOT_MET = "Prerequisites Not Met"
    CREDIT_LIMIT_EXCEEDED = "Credit Limit Exceeded"
    NOT_REGISTERED = "Not Registered"
    DROP_MISMATCH = "Drop Mismatch"
    PROFILE_ERROR = "Profile Error"


@dataclass(frozen=True)
class Course:
    """
    A catalog entry.

    Prerequisites are course codes, not ids: the same code is offered
    once per department and period, each with its own id.
    """
    id: str
    code: str
    title: str
    department: str
    level: int
    credits: int
    type: CourseType
    academic_year: str  # e.g. "2024/2025"
    semester: str  # First Semester, Second Semester, Resit Semester
    prerequisites: List[str] = field(default_factory=list)
    schedule: str = ""
    description: str = ""
    lecturer_id: Optional[str] = None
    lecturer_name: Optional[str] = None

    @property
    def period(self):
        return (self.academic_year, self.semester)

    def in_period(self, academic_year: str, semester: str) -> bool:
        return self.academic_year == academic_year and self.semester == semester

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Course":
        """
        Build a Course from a Firestore document or seed-file entry.

        Raises ValueError when the academic year is missing or not 'YYYY/YYYY',
        since period ordering depends on it.
        """
        academic_year = data.get("academicYear", "")
        parse_start_year(academic_year)
        return cls(
            id=data["id"],
            code=data.get("code", ""),
            title=data.get("title", ""),
            department=data.get("department", ""),
            level=int(data.get("level", 0)),
            credits=int(data.get("credits", 0)),
            type=CourseType(data.get("type", CourseType.COMPULSORY.value)),
            academic_year=academic_year,
            semester=data.get("semester", ""),
            prerequisites=list(data.get("prerequisites") or []),
            schedule=data.get("schedule") or "",
            description=data.get("description") or "",
            lecturer_id=data.get("lecturerId"),
            lecturer_name=data.get("lecturerName"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "title": self.title,
            "department": self.department,
            "level": self.level,
            "credits": self.credits,
            "type": self.type.value,
            "academicYear": self.academic_year,
            "semester": self.semester,
            "prerequisites": list(self.prerequisites),
            "schedule": self.schedule,
            "description": self.description,
            "lecturerId": self.lecturer_id,
            "lecturerName": self.lecturer_name,
        }


@dataclass(frozen=True)
class StudentAcademicContext:
    """Where a student currently sits: department, level and period"""
    department: str
    level: int
    current_academic_year: str
    current_semester: str


@dataclass
class Decision:
    """Outcome of a register/drop evaluation"""
    allowed: bool
    reason: Optional[DenialReason] = None
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def allow(cls, message: str = "") -> "Decision":
        return cls(allowed=True, message=message)

    @classmethod
    def deny(cls, reason: DenialReason, message: str, **details) -> "Decision":
        return cls(allowed=False, reason=reason, message=message, details=details)

    def __bool__(self) -> bool:
        return self.allowed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
            "details": self.details,
        }
