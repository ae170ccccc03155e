"""
Student Profile Service

Reads portal user profiles from Firestore and derives the academic context
the registration engine works with.
"""

from typing import Any, Dict, Optional
from datetime import datetime

from core.config import get_firestore_client, initialize_firebase
from core.models import StudentAcademicContext

SEMESTERS = ["First Semester", "Second Semester", "Resit Semester"]

# Fallbacks for incomplete student profiles
DEFAULT_DEPARTMENT = "CESM"
DEFAULT_LEVEL = 400
DEFAULT_ACADEMIC_YEAR = "2024/2025"
DEFAULT_SEMESTER = "First Semester"


def context_from_profile(profile: Optional[Dict[str, Any]]) -> Optional[StudentAcademicContext]:
    """
    Build a student's academic context from a profile document.

    Missing fields fall back to the portal defaults. Non-student profiles
    have no academic context.
    """
    if not profile or profile.get("role", "student") != "student":
        return None

    level = profile.get("level") or DEFAULT_LEVEL
    try:
        level = int(level)
    except (TypeError, ValueError):
        level = DEFAULT_LEVEL

    return StudentAcademicContext(
        department=profile.get("department") or DEFAULT_DEPARTMENT,
        level=level,
        current_academic_year=profile.get("currentAcademicYear") or DEFAULT_ACADEMIC_YEAR,
        current_semester=profile.get("currentSemester") or DEFAULT_SEMESTER
    )


class StudentService:
    """Service for reading user profiles from Firebase Firestore."""

    USERS_COLLECTION = "users"

    def __init__(self):
        self.db = get_firestore_client()

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get a user profile by user ID."""
        doc = self.db.collection(self.USERS_COLLECTION).document(user_id).get()
        if doc.exists:
            data = doc.to_dict()
            data["uid"] = doc.id
            return data
        return None

    def get_academic_context(self, user_id: str) -> Optional[StudentAcademicContext]:
        """Get the academic context for a student, or None if unavailable."""
        return context_from_profile(self.get_profile(user_id))

    def update_current_period(
        self, user_id: str, academic_year: str, semester: str
    ) -> Optional[Dict[str, Any]]:
        """Move a student to a new academic period."""
        if semester not in SEMESTERS:
            raise ValueError(f"Invalid semester: {semester}. Must be one of {', '.join(SEMESTERS)}")

        doc_ref = self.db.collection(self.USERS_COLLECTION).document(user_id)
        doc = doc_ref.get()

        if not doc.exists:
            return None

        doc_ref.update({
            "currentAcademicYear": academic_year,
            "currentSemester": semester,
            "updatedAt": datetime.utcnow().isoformat()
        })

        updated = doc_ref.get().to_dict()
        updated["uid"] = user_id
        return updated


_student_service: Optional[StudentService] = None


def get_student_service() -> StudentService:
    """Get singleton instance of StudentService."""
    global _student_service
    if _student_service is None:
        initialize_firebase()
        _student_service = StudentService()
    return _student_service
