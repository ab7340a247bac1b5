"""
Grade definitions for the testing center.

Percentages are bucketed into letter grades by fixed lower thresholds. This
module also owns the percentage calculation so that every result written to
the store is rounded the same way.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, List, Optional, Union

from sems_cli.models import GradeType

Number = Union[Decimal, int, float, str]

RATIO_PLACES = Decimal("0.0001")
PERCENT_PLACES = Decimal("0.01")


@dataclass
class GradeDefinition:
    """A letter grade and the lowest percentage that earns it."""

    grade: GradeType
    min_percentage: Decimal
    description: str


GRADE_DEFINITIONS: List[GradeDefinition] = [
    GradeDefinition(grade="A+", min_percentage=Decimal(90), description="Outstanding"),
    GradeDefinition(grade="A", min_percentage=Decimal(80), description="Excellent"),
    GradeDefinition(grade="B", min_percentage=Decimal(70), description="Very Good"),
    GradeDefinition(grade="C", min_percentage=Decimal(60), description="Good"),
    GradeDefinition(grade="D", min_percentage=Decimal(50), description="Average"),
    GradeDefinition(grade="E", min_percentage=Decimal(40), description="Pass"),
    GradeDefinition(grade="Fail", min_percentage=Decimal(0), description="Fail"),
]

_GRADE_LOOKUP: Dict[GradeType, GradeDefinition] = {
    grade_def.grade: grade_def for grade_def in GRADE_DEFINITIONS
}

# Highest threshold first so the first match wins
_THRESHOLDS = sorted(GRADE_DEFINITIONS, key=lambda g: g.min_percentage, reverse=True)

FAILING_GRADE: GradeType = "Fail"


def to_decimal(value: Number) -> Decimal:
    """
    Convert marks or a percentage to a finite Decimal.

    Raises:
        ValueError: If the value is not a number, or is NaN or infinite
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() keeps 89.99 as 89.99 instead of its binary float expansion
            result = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def calculate_percentage(marks_obtained: Number, max_marks: Number) -> Decimal:
    """
    Calculate the percentage for a result.

    The ratio is rounded half-up to 4 places first, then scaled to a percentage
    and rounded half-up to 2 places.

    Args:
        marks_obtained: Marks scored by the examinee
        max_marks: Maximum marks for the exam, must be positive

    Returns:
        Percentage as a Decimal with two places

    Raises:
        ValueError: If either value is not a finite number or max_marks is not positive
    """
    marks = to_decimal(marks_obtained)
    maximum = to_decimal(max_marks)
    if maximum <= 0:
        raise ValueError(f"Max marks must be positive, got {maximum}")

    ratio = (marks / maximum).quantize(RATIO_PLACES, rounding=ROUND_HALF_UP)
    return (ratio * 100).quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def get_grade_by_percentage(percentage: Number) -> GradeType:
    value = to_decimal(percentage)
    for grade_def in _THRESHOLDS:
        if value >= grade_def.min_percentage:
            return grade_def.grade
    return FAILING_GRADE


def get_grade_definition(grade: str) -> Optional[GradeDefinition]:
    return _GRADE_LOOKUP.get(grade)  # type: ignore[arg-type]


def get_grade_description(grade: str) -> Optional[str]:
    grade_def = get_grade_definition(grade)
    return grade_def.description if grade_def else None


def is_passing_grade(grade: Optional[str]) -> bool:
    """A result passes when it carries a grade other than Fail."""
    return grade is not None and grade in _GRADE_LOOKUP and grade != FAILING_GRADE
