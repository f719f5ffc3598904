"""Grade (rank) progression driven by consecutive daily passes.

The ladder for a subject is its grade definitions sorted by
``display_order``; the last rung is the max grade.

Rules for one quiz attempt:

- pass, not yet challenged today -> streak + 1
- pass, already challenged today -> streak unchanged
- fail -> streak reset to 0
- streak >= required days of the current grade (and not max grade)
  -> move to the next grade, streak reset to 0
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from quizportal.dates import today_local


@dataclass(slots=True, frozen=True)
class GradeAdvancement:
    new_streak: int
    new_grade: str
    advanced: bool
    is_max_grade: bool

    def to_dict(self) -> dict:
        return {
            'new_streak': self.new_streak,
            'new_grade': self.new_grade,
            'advanced': self.advanced,
            'is_max_grade': self.is_max_grade,
        }


def sort_ladder(grades: Sequence[Any]) -> List[Any]:
    return sorted(grades, key=lambda g: g.display_order)


def _index_of(grade_name: str, ladder: Sequence[Any]) -> int:
    for i, grade in enumerate(ladder):
        if grade.grade_name == grade_name:
            return i
    raise ValueError(f"Unknown grade: {grade_name!r}")


def find_grade(grade_name: str, grades: Sequence[Any]):
    ladder = sort_ladder(grades)
    return ladder[_index_of(grade_name, ladder)]


def next_grade(grade_name: str, grades: Sequence[Any]) -> Optional[str]:
    """Name of the grade above ``grade_name``, or None at the top of the ladder."""
    ladder = sort_ladder(grades)
    idx = _index_of(grade_name, ladder)
    if idx == len(ladder) - 1:
        return None
    return ladder[idx + 1].grade_name


def calculate_grade_advancement(
    current_grade: str,
    current_streak: int,
    passed: bool,
    last_challenge_date: Optional[str],
    all_grades: Sequence[Any],
    today: Optional[str] = None,
) -> GradeAdvancement:
    if today is None:
        today = today_local()

    if passed:
        new_streak = current_streak if last_challenge_date == today else current_streak + 1
    else:
        new_streak = 0

    ladder = sort_ladder(all_grades)
    idx = _index_of(current_grade, ladder)
    is_max_grade = idx == len(ladder) - 1

    new_grade = current_grade
    advanced = False
    if passed and not is_max_grade and new_streak >= ladder[idx].required_consecutive_days:
        new_grade = ladder[idx + 1].grade_name
        advanced = True
        new_streak = 0

    return GradeAdvancement(
        new_streak=new_streak,
        new_grade=new_grade,
        advanced=advanced,
        is_max_grade=is_max_grade,
    )
