from dataclasses import dataclass
from enum import Enum
import logging
from typing import Dict, List, Optional, Tuple


logger = logging.getLogger(__name__)

GRADE_SYMBOLS: Tuple[str, ...] = ("A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D+", "D", "E", "F")


class GradingScale(str, Enum):
    DEFAULT = "DEFAULT"
    DEFAULT_WITH_E = "DEFAULT_WITH_E"
    NUC_REFORM_4_0 = "NUC_REFORM_4_0"
    STRICT_PRIVATE_5_0 = "STRICT_PRIVATE_5_0"
    US_STANDARD_4_0 = "US_STANDARD_4_0"


@dataclass(frozen=True)
class GradeDefinition:
    grade: str
    points: float
    range: str


GRADING_SCALES: Dict[GradingScale, Tuple[GradeDefinition, ...]] = {
    GradingScale.DEFAULT: (
        GradeDefinition("A", 5.0, "70-100"),
        GradeDefinition("B", 4.0, "60-69"),
        GradeDefinition("C", 3.0, "50-59"),
        GradeDefinition("D", 2.0, "45-49"),
        GradeDefinition("F", 0.0, "0-44"),
    ),
    GradingScale.DEFAULT_WITH_E: (
        GradeDefinition("A", 5.0, "70-100"),
        GradeDefinition("B", 4.0, "60-69"),
        GradeDefinition("C", 3.0, "50-59"),
        GradeDefinition("D", 2.0, "45-49"),
        GradeDefinition("E", 1.0, "40-44"),
        GradeDefinition("F", 0.0, "0-39"),
    ),
    GradingScale.NUC_REFORM_4_0: (
        GradeDefinition("A", 4.0, "70-100"),
        GradeDefinition("B", 3.0, "60-69"),
        GradeDefinition("C", 2.0, "50-59"),
        GradeDefinition("D", 1.0, "45-49"),
        GradeDefinition("F", 0.0, "0-44"),
    ),
    GradingScale.STRICT_PRIVATE_5_0: (
        GradeDefinition("A", 5.0, "75-100"),
        GradeDefinition("B", 4.0, "65-74"),
        GradeDefinition("C", 3.0, "50-64"),
        GradeDefinition("D", 2.0, "45-49"),
        GradeDefinition("E", 1.0, "40-44"),
        GradeDefinition("F", 0.0, "0-39"),
    ),
    GradingScale.US_STANDARD_4_0: (
        GradeDefinition("A", 4.0, "93-100"),
        GradeDefinition("A-", 3.7, "90-92"),
        GradeDefinition("B+", 3.3, "87-89"),
        GradeDefinition("B", 3.0, "83-86"),
        GradeDefinition("B-", 2.7, "80-82"),
        GradeDefinition("C+", 2.3, "77-79"),
        GradeDefinition("C", 2.0, "73-76"),
        GradeDefinition("C-", 1.7, "70-72"),
        GradeDefinition("D+", 1.3, "67-69"),
        GradeDefinition("D", 1.0, "60-66"),
        GradeDefinition("F", 0.0, "0-59"),
    ),
}

SCALE_LABELS: Dict[GradingScale, str] = {
    GradingScale.DEFAULT: "5.0 scale (A-F, no E)",
    GradingScale.DEFAULT_WITH_E: "5.0 scale with E",
    GradingScale.NUC_REFORM_4_0: "4.0 reform scale",
    GradingScale.STRICT_PRIVATE_5_0: "Strict 5.0 scale",
    GradingScale.US_STANDARD_4_0: "US 4.0 scale (+/-)",
}


def parse_scale(value: str) -> GradingScale:
    try:
        return GradingScale(value)
    except ValueError as exc:
        raise ValueError(f"Unsupported grading scale: {value}") from exc


def scale_or_default(value: Optional[str]) -> GradingScale:
    """Lenient read path for stored preferences: unknown names fall back to DEFAULT."""
    if not value:
        return GradingScale.DEFAULT
    try:
        return GradingScale(value)
    except ValueError:
        logger.warning("Unknown grading scale %r on profile, using DEFAULT", value)
        return GradingScale.DEFAULT


def grade_definitions(scale: GradingScale) -> Tuple[GradeDefinition, ...]:
    return GRADING_SCALES[scale]


def grade_points(scale: GradingScale) -> Dict[str, float]:
    return {definition.grade: definition.points for definition in GRADING_SCALES[scale]}


def grades(scale: GradingScale) -> List[str]:
    return [definition.grade for definition in GRADING_SCALES[scale]]


def max_points(scale: GradingScale) -> float:
    return max(definition.points for definition in GRADING_SCALES[scale])
