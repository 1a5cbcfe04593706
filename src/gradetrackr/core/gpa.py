from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence


@dataclass(frozen=True)
class CourseResult:
    grade: str
    credit_hours: float


def _weighted_totals(courses: Iterable[Any], points: Dict[str, float]) -> tuple[float, float]:
    total_points = 0.0
    total_credits = 0.0
    for course in courses:
        # grades missing from the active scale count as 0 points
        total_points += points.get(course.grade, 0.0) * course.credit_hours
        total_credits += course.credit_hours
    return total_points, total_credits


def calculate_semester_gpa(courses: Iterable[Any], points: Dict[str, float]) -> float:
    """
    courses: iterable of objects with .grade and .credit_hours
    GPA = Σ(points[grade] * credit_hours) / Σ(credit_hours)
    """
    total_points, total_credits = _weighted_totals(courses, points)
    if total_credits == 0:
        return 0.0
    return total_points / total_credits


def calculate_cgpa(semesters: Iterable[Any], points: Dict[str, float]) -> float:
    all_courses = [course for semester in semesters for course in semester.courses]
    return calculate_semester_gpa(all_courses, points)


def calculate_projected_cgpa(
    current_cgpa: float,
    current_credits: float,
    new_courses: Sequence[Any],
    points: Dict[str, float],
) -> float:
    """
    Blend a known (cgpa, credits) pair with hypothetical courses.
    Returns current_cgpa unchanged when there is nothing to add.
    """
    if not new_courses:
        return current_cgpa

    new_points, new_credits = _weighted_totals(new_courses, points)
    total_credits = current_credits + new_credits
    if total_credits == 0:
        return 0.0
    return (current_cgpa * current_credits + new_points) / total_credits


def course_credits(courses: Iterable[Any]) -> float:
    return sum((course.credit_hours for course in courses), 0.0)


def total_credits(semesters: Iterable[Any]) -> float:
    return sum((course_credits(semester.courses) for semester in semesters), 0.0)


def unknown_grades(courses: Iterable[Any], points: Dict[str, float]) -> List[str]:
    return sorted({course.grade for course in courses if course.grade not in points})


def format_average(value: float) -> str:
    return f"{value:.2f}"


def format_projection(value: float) -> str:
    return f"{value:.3f}"


def format_credits(value: float) -> str:
    return f"{value:.1f}"
