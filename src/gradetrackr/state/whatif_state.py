import math
from typing import Any, Dict, List, Optional

from gradetrackr.core.gpa import calculate_projected_cgpa, course_credits
from gradetrackr.core.models import HypotheticalCourse
from gradetrackr.core.scales import GradingScale, grade_points, grades
from gradetrackr.core.validation import ValidationError, validate_projection_inputs


def _number_or_zero(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


class WhatIfScratchpad:
    """Hypothetical courses for CGPA projection. Nothing here is ever persisted."""

    def __init__(self, scale: GradingScale, initial_cgpa: float = 0.0, initial_credits: float = 0.0) -> None:
        self.scale = scale
        self.current_cgpa = f"{initial_cgpa:.2f}" if initial_cgpa > 0 else ""
        self.current_credits = f"{initial_credits:g}" if initial_credits > 0 else ""
        self.courses: List[HypotheticalCourse] = []
        self.errors: Dict[str, str] = {}

    def add_course(self) -> HypotheticalCourse:
        course = HypotheticalCourse(name="", credit_hours=3.0, grade=grades(self.scale)[0])
        self.courses.append(course)
        return course

    def remove_course(self, course_id: str) -> None:
        self.courses = [c for c in self.courses if c.id != course_id]

    def update_course(self, course_id: str, **fields: Any) -> None:
        for course in self.courses:
            if course.id != course_id:
                continue
            if "name" in fields:
                course.name = str(fields["name"])
            if "credit_hours" in fields:
                course.credit_hours = _number_or_zero(fields["credit_hours"])
            if "grade" in fields:
                course.grade = str(fields["grade"])

    def reset(self) -> None:
        self.current_cgpa = ""
        self.current_credits = ""
        self.courses = []
        self.errors = {}

    def validate(self) -> bool:
        try:
            validate_projection_inputs(self.current_cgpa, self.current_credits, self.scale)
        except ValidationError as exc:
            self.errors = exc.errors
            return False
        self.errors = {}
        return True

    @property
    def new_credits(self) -> float:
        return course_credits(self.courses)

    @property
    def total_credits_after(self) -> float:
        return _number_or_zero(self.current_credits) + self.new_credits

    def projected(self) -> Optional[float]:
        if not self.validate():
            return None
        cgpa, credits = float(self.current_cgpa), float(self.current_credits)
        return calculate_projected_cgpa(cgpa, credits, self.courses, grade_points(self.scale))

    def delta(self) -> Optional[float]:
        projected = self.projected()
        if projected is None:
            return None
        return projected - float(self.current_cgpa)
