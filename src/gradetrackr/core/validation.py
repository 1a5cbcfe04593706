"""Form-level input checks, run before any network call.

Each check raises ``ValidationError`` carrying a field -> message mapping so
views can render the message next to the offending input.
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

from gradetrackr.core.scales import GradingScale, grades, max_points


logger = logging.getLogger(__name__)


MAX_CREDIT_HOURS = 6.0
MIN_PASSWORD_LENGTH = 6


class ValidationError(ValueError):
    def __init__(self, errors: Dict[str, str]) -> None:
        super().__init__("; ".join(errors.values()))
        self.errors = errors


def _parse_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    # nan and inf count as missing input
    return number if math.isfinite(number) else None


def validate_semester_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError({"name": "Semester name is required"})
    return cleaned


def validate_course(name: str, credit_hours: Any, grade: str, scale: GradingScale) -> Tuple[str, float, str]:
    errors: Dict[str, str] = {}
    cleaned = (name or "").strip()
    if not cleaned:
        errors["name"] = "Course name is required"

    credits = _parse_float(credit_hours)
    if credits is None or credits <= 0 or credits > MAX_CREDIT_HOURS:
        errors["credit_hours"] = "Please enter credit hours between 0 and 6"

    if grade not in grades(scale):
        errors["grade"] = f"Grade {grade!r} is not part of the selected grading scale"

    if errors:
        raise ValidationError(errors)
    return cleaned, credits, grade


def validate_course_update(fields: Dict[str, Any], scale: GradingScale) -> Dict[str, Any]:
    """Same checks as ``validate_course``, applied only to the fields being changed."""
    errors: Dict[str, str] = {}
    cleaned: Dict[str, Any] = {}
    if "name" in fields:
        cleaned["name"] = (fields["name"] or "").strip()
        if not cleaned["name"]:
            errors["name"] = "Course name is required"
    if "credit_hours" in fields:
        cleaned["credit_hours"] = _parse_float(fields["credit_hours"])
        if cleaned["credit_hours"] is None or not 0 < cleaned["credit_hours"] <= MAX_CREDIT_HOURS:
            errors["credit_hours"] = "Please enter credit hours between 0 and 6"
    if "grade" in fields:
        cleaned["grade"] = fields["grade"]
        if cleaned["grade"] not in grades(scale):
            errors["grade"] = f"Grade {cleaned['grade']!r} is not part of the selected grading scale"

    if errors:
        raise ValidationError(errors)
    return cleaned


def validate_target_cgpa(value: Any, scale: GradingScale) -> float:
    upper = max_points(scale)
    target = _parse_float(value)
    if target is None or target < 0 or target > upper:
        raise ValidationError({"target_cgpa": f"Please enter a valid CGPA between 0.0 and {upper:.1f}"})
    return target


def validate_projection_inputs(current_cgpa: Any, current_credits: Any, scale: GradingScale) -> Tuple[float, float]:
    errors: Dict[str, str] = {}
    upper = max_points(scale)

    cgpa = _parse_float(current_cgpa)
    if cgpa is None or cgpa < 0 or cgpa > upper:
        errors["current_cgpa"] = f"Please enter a valid CGPA between 0.0 and {upper:.1f}"

    credits = _parse_float(current_credits)
    if credits is None or credits < 0:
        errors["current_credits"] = "Please enter valid credit hours"

    if errors:
        raise ValidationError(errors)
    return cgpa, credits


def validate_new_password(password: str, confirm: str) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError({"password": f"Password must be at least {MIN_PASSWORD_LENGTH} characters."})
    if password != confirm:
        raise ValidationError({"confirm": "Passwords do not match."})
    return password


def validate_feedback(subject: str, body: str) -> Tuple[str, str]:
    errors: Dict[str, str] = {}
    if not (subject or "").strip():
        errors["subject"] = "Subject is required"
    if not (body or "").strip():
        errors["body"] = "Please write your suggestion"
    if errors:
        raise ValidationError(errors)
    return subject.strip(), body.strip()


def importable_courses(scanned: Iterable[Any], scale: GradingScale) -> List[Tuple[str, float, str]]:
    """Scanned rows that pass ``validate_course``; incomplete or invalid rows are skipped."""
    rows: List[Tuple[str, float, str]] = []
    for course in scanned:
        if not course.is_complete:
            continue
        try:
            rows.append(validate_course(course.name, course.credit_hours, course.grade, scale))
        except ValidationError as exc:
            logger.info("Skipping scanned row %r: %s", course.name, exc)
    return rows
