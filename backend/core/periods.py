"""
Academic Period Utilities

A period is an (academic year, semester) pair, e.g. ("2024/2025", "First Semester").

Chronological order:
- Academic years compare by start year ("2023/2024" -> 2023)
- Within a year: First Semester < Second Semester < Resit Semester

Registration windows come from the institution's academic calendar, a static
table keyed on year + semester. Pairs missing from the table are closed.
"""

import json
from dataclasses import dataclass, asdict
from datetime import datetime, date
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from core.config import REGISTRATION_CALENDAR_PATH

SEMESTER_ORDER = {
    "First Semester": 1,
    "Second Semester": 2,
    "Resit Semester": 3,
}

NO_DEADLINE = "N/A"

# Days before the deadline when the "deadline approaching" notice shows
DEADLINE_WARNING_DAYS = 7


def parse_start_year(academic_year: str) -> int:
    """
    Get the start year of an academic year string.
    Example: "2023/2024" -> 2023
    """
    try:
        return int(academic_year.split("/")[0])
    except (ValueError, AttributeError):
        raise ValueError(f"Invalid academic year: {academic_year}. Expected 'YYYY/YYYY'")


def semester_ordinal(semester: str) -> int:
    """Ordinal of a semester within its year; unknown semesters sort first."""
    return SEMESTER_ORDER.get(semester, 0)


def compare_periods(period1: Tuple[str, str], period2: Tuple[str, str]) -> int:
    """
    Compare two (academic_year, semester) periods chronologically.
    Returns: -1 if period1 < period2, 0 if equal, 1 if period1 > period2
    """
    year1 = parse_start_year(period1[0])
    year2 = parse_start_year(period2[0])

    if year1 != year2:
        return -1 if year1 < year2 else 1

    order1 = semester_ordinal(period1[1])
    order2 = semester_ordinal(period2[1])

    return -1 if order1 < order2 else (0 if order1 == order2 else 1)


def period_precedes(period: Tuple[str, str], other: Tuple[str, str]) -> bool:
    """True if period is strictly earlier than other."""
    return compare_periods(period, other) < 0


@dataclass(frozen=True)
class RegistrationPeriod:
    """Registration window for one (academic year, semester) pair"""
    academic_year: str
    semester: str
    is_open: bool
    deadline: str = NO_DEADLINE  # ISO date or "N/A"

    @property
    def period(self) -> Tuple[str, str]:
        return (self.academic_year, self.semester)

    @property
    def display_name(self) -> str:
        return f"{self.semester}, {self.academic_year}"

    @property
    def deadline_date(self) -> Optional[date]:
        if not self.deadline or self.deadline == NO_DEADLINE:
            return None
        return date.fromisoformat(self.deadline)

    def days_to_deadline(self, today: Optional[date] = None) -> Optional[int]:
        """Whole days from today until the deadline (negative once passed)."""
        deadline = self.deadline_date
        if deadline is None:
            return None
        today = today or datetime.now().date()
        return (deadline - today).days

    def is_deadline_approaching(self, today: Optional[date] = None) -> bool:
        """True while an open window closes within DEADLINE_WARNING_DAYS."""
        if not self.is_open:
            return False
        days = self.days_to_deadline(today)
        return days is not None and 0 <= days <= DEADLINE_WARNING_DAYS

    def to_dict(self, today: Optional[date] = None) -> Dict[str, Union[str, bool, int, None]]:
        data = asdict(self)
        data["display_name"] = self.display_name
        data["days_to_deadline"] = self.days_to_deadline(today) if self.is_open else None
        data["deadline_approaching"] = self.is_deadline_approaching(today)
        return data


class AcademicCalendar:
    """Static lookup of registration windows"""

    DEFAULT_PERIODS = {
        ("2024/2025", "First Semester"): {"isOpen": True, "deadline": "2024-09-15"},
        ("2024/2025", "Second Semester"): {"isOpen": True, "deadline": "2025-02-15"},
        ("2023/2024", "First Semester"): {"isOpen": False, "deadline": "2023-09-15"},
        ("2023/2024", "Second Semester"): {"isOpen": False, "deadline": "2024-02-15"},
        ("2022/2023", "First Semester"): {"isOpen": False, "deadline": "2022-09-15"},
        ("2022/2023", "Second Semester"): {"isOpen": False, "deadline": "2023-02-15"},
    }

    def __init__(self, periods: Optional[Dict[Tuple[str, str], Dict]] = None):
        self._periods = dict(self.DEFAULT_PERIODS if periods is None else periods)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "AcademicCalendar":
        """
        Load a calendar from JSON.

        Expected format:
            [{"academicYear": "2024/2025", "semester": "First Semester",
              "isOpen": true, "deadline": "2024-09-15"}, ...]
        """
        with open(path, "r", encoding="utf-8") as f:
            entries = json.load(f)

        periods = {}
        for entry in entries:
            key = (entry["academicYear"], entry["semester"])
            periods[key] = {
                "isOpen": bool(entry.get("isOpen", False)),
                "deadline": entry.get("deadline") or NO_DEADLINE
            }
        return cls(periods)

    def resolve(self, academic_year: str, semester: str) -> RegistrationPeriod:
        """Resolve the registration window for a period."""
        entry = self._periods.get((academic_year, semester))
        if entry is None:
            return RegistrationPeriod(
                academic_year=academic_year,
                semester=semester,
                is_open=False,
                deadline=NO_DEADLINE
            )
        return RegistrationPeriod(
            academic_year=academic_year,
            semester=semester,
            is_open=entry.get("isOpen", False),
            deadline=entry.get("deadline") or NO_DEADLINE
        )

    def open_periods(self):
        """All periods currently accepting registrations, oldest first."""
        keys = [k for k, v in self._periods.items() if v.get("isOpen")]
        keys.sort(key=lambda k: (parse_start_year(k[0]), semester_ordinal(k[1])))
        return [self.resolve(*k) for k in keys]


_calendar: Optional[AcademicCalendar] = None


def get_academic_calendar() -> AcademicCalendar:
    """Get singleton calendar, loaded from REGISTRATION_CALENDAR_PATH if set."""
    global _calendar
    if _calendar is None:
        if REGISTRATION_CALENDAR_PATH:
            print(f"[CALENDAR] Loading academic calendar from {REGISTRATION_CALENDAR_PATH}")
            _calendar = AcademicCalendar.from_file(REGISTRATION_CALENDAR_PATH)
        else:
            _calendar = AcademicCalendar()
    return _calendar


def resolve_registration_period(academic_year: str, semester: str) -> RegistrationPeriod:
    """Convenience function to resolve a period against the configured calendar"""
    return get_academic_calendar().resolve(academic_year, semester)
