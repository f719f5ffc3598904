"""Quiz scoring: choice shuffling, client-side grading and server re-verification.

Questions only need the attributes ``question_id``, ``choice_1``..``choice_4``
and ``correct_answer`` (1-based, as stored), so both ``models.Question`` rows
and plain stand-ins work.
"""
from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

CHOICE_COUNT = 4


@dataclass(slots=True, frozen=True)
class ShuffledChoice:
    """A choice as displayed, remembering its position in the stored question."""

    original_index: int  # 0-based: choice_1 -> 0
    text: str


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def correct_index(question) -> int:
    """Stored ``correct_answer`` (1..4) as a 0-based choice index."""
    return int(question.correct_answer) - 1


def question_choices(question) -> List[str]:
    return [getattr(question, f"choice_{i}") for i in range(1, CHOICE_COUNT + 1)]


def shuffle_array(items: Sequence[Any], rng: Optional[random.Random] = None) -> List[Any]:
    """Fisher-Yates shuffle into a new list; ``items`` is left untouched."""
    rng = rng or random
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def shuffle_choices(question, rng: Optional[random.Random] = None) -> List[ShuffledChoice]:
    choices = [
        ShuffledChoice(original_index=i, text=text)
        for i, text in enumerate(question_choices(question))
    ]
    return shuffle_array(choices, rng)


def select_questions(questions: Sequence[Any], count: int, rng: Optional[random.Random] = None) -> List[Any]:
    """Pick ``count`` questions in random order."""
    if count > len(questions):
        raise ValueError(f"Not enough questions: need {count}, have {len(questions)}")
    return shuffle_array(questions, rng)[:count]


def _score(correct_count: int, total: int) -> int:
    return round_half_up((correct_count / total) * 100)


def grade_quiz(questions: Sequence[Any], student_answers: Sequence[int]) -> Dict[str, Any]:
    """Grade answers given as 0-based choice indexes, one per question.

    Pass/fail is not decided here; the threshold belongs to the grade.
    """
    if not questions:
        raise ValueError("Cannot grade a quiz without questions")
    if len(student_answers) != len(questions):
        raise ValueError(
            f"Expected {len(questions)} answers, got {len(student_answers)}"
        )

    correct_count = 0
    correct_answers = []
    results = []
    for question, answer in zip(questions, student_answers):
        expected = correct_index(question)
        correct_answers.append(expected)
        is_correct = answer == expected
        if is_correct:
            correct_count += 1
        results.append({
            'correct': is_correct,
            'student_answer': answer,
            'correct_answer': expected,
        })

    return {
        'score': _score(correct_count, len(questions)),
        'correct_answers': correct_answers,
        'results': results,
    }


def order_by_ids(questions: Sequence[Any], question_ids: Sequence[int]) -> List[Any]:
    """Arrange ``questions`` so position i holds the question with id ``question_ids[i]``."""
    if len(questions) != len(question_ids):
        raise ValueError(
            f"Got {len(questions)} questions for {len(question_ids)} question ids"
        )
    position = {qid: i for i, qid in enumerate(question_ids)}
    missing = [q.question_id for q in questions if q.question_id not in position]
    if missing:
        raise ValueError(f"Questions not in submitted id list: {missing}")
    return sorted(questions, key=lambda q: position[q.question_id])


def verify_score(
    questions: Sequence[Any],
    question_ids: Sequence[int],
    student_answers: Sequence[int],
) -> int:
    """Recompute the score from stored answer keys.

    ``questions`` may come back from storage in any order; ``student_answers[i]``
    always refers to ``question_ids[i]``.
    """
    ordered = order_by_ids(questions, question_ids)
    return grade_quiz(ordered, student_answers)['score']


def is_passing(score: int, pass_score: int) -> bool:
    return score >= pass_score
