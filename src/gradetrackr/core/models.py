from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional
from uuid import uuid4

from gradetrackr.core.gpa import calculate_semester_gpa, course_credits


@dataclass
class Course:
    id: str
    name: str
    credit_hours: float
    grade: str
    semester_id: Optional[str] = None


@dataclass
class Semester:
    id: str
    name: str
    courses: List[Course] = field(default_factory=list)
    gpa: float = 0.0

    @property
    def total_credits(self) -> float:
        return course_credits(self.courses)

    def refresh_gpa(self, points: Dict[str, float]) -> float:
        # gpa is derived, never trusted from storage or callers
        self.gpa = calculate_semester_gpa(self.courses, points)
        return self.gpa


@dataclass
class GoalData:
    target_cgpa: float


@dataclass
class HypotheticalCourse:
    name: str = ""
    credit_hours: float = 3.0
    grade: str = "A"
    id: str = field(default_factory=lambda: uuid4().hex)


@dataclass
class ScannedCourse:
    """Partial course inferred from a results image; any field may be missing."""

    name: Optional[str] = None
    credit_hours: Optional[float] = None
    grade: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.name and self.credit_hours and self.grade)
