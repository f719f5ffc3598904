import json
import logging
import random
from typing import Any, Dict, Optional, Sequence

from sqlmodel import select

from quizportal.dates import is_taken_today, today_local
from quizportal.db import get_session
from quizportal.grades import get_grades_for_subject
from quizportal.models import GradeDefinition, QuizRecord, StudentSubjectProgress, now_utc
from quizportal.progression import calculate_grade_advancement
from quizportal.questions import get_questions_by_ids, get_questions_in_range
from quizportal.scoring import (
    grade_quiz,
    is_passing,
    order_by_ids,
    select_questions,
    shuffle_choices,
    verify_score,
)
from quizportal.students import get_progress

logger = logging.getLogger(__name__)


def _find_grade(grades: Sequence[GradeDefinition], grade_name: str) -> Optional[GradeDefinition]:
    for g in grades:
        if g.grade_name == grade_name:
            return g
    return None


def _present(question, rng) -> Dict[str, Any]:
    return {
        'question_id': question.question_id,
        'question_text': question.question_text,
        'choices': [
            {'original_index': c.original_index, 'text': c.text}
            for c in shuffle_choices(question, rng)
        ],
    }


def start_quiz(
    student_id: int,
    subject_id: int,
    retry_ids: Optional[Sequence[int]] = None,
    rng: Optional[random.Random] = None,
) -> dict:
    """Pick the questions for a student's next quiz in a subject.

    Normal quizzes draw ``num_questions`` random questions from the current
    grade's id range. A retry replays ``retry_ids`` in the given order.
    Choices are shuffled per question; answers are reported back as the
    chosen ``original_index``.
    """
    progress = get_progress(student_id, subject_id)
    if not progress:
        return {'success': False, 'message': "この科目の進捗情報が見つかりません"}

    grade = _find_grade(get_grades_for_subject(subject_id), progress.current_grade)
    if not grade:
        return {'success': False, 'message': "グレード定義が見つかりません"}

    if retry_ids:
        retry_ids = list(dict.fromkeys(retry_ids))
        stored = get_questions_by_ids(subject_id, retry_ids)
        if not stored:
            return {'success': False, 'message': "問題データが見つかりません"}
        found = {q.question_id for q in stored}
        selected = order_by_ids(stored, [qid for qid in retry_ids if qid in found])
    else:
        pool = get_questions_in_range(subject_id, grade.start_id, grade.end_id)
        if len(pool) < grade.num_questions:
            return {'success': False, 'message': "問題数が不足しています"}
        selected = select_questions(pool, grade.num_questions, rng)

    return {
        'success': True,
        'retry': bool(retry_ids),
        'grade': grade.grade_name,
        'pass_score': grade.pass_score,
        'taken_today': is_taken_today(progress.last_challenge_date),
        'questions': [_present(q, rng) for q in selected],
    }


def check_answers(subject_id: int, question_ids: Sequence[int], student_answers: Sequence[int]) -> dict:
    """Grade answers against stored keys without recording anything (retry mode)."""
    stored = get_questions_by_ids(subject_id, question_ids)
    if len(stored) != len(question_ids) or len(student_answers) != len(question_ids):
        return {'success': False, 'message': "問題データの検証に失敗しました"}
    graded = grade_quiz(order_by_ids(stored, question_ids), student_answers)
    return {'success': True, **graded}


def save_quiz_result(
    student_id: int,
    subject_id: int,
    question_ids: Sequence[int],
    student_answers: Sequence[int],
    today: Optional[str] = None,
) -> dict:
    """Record a quiz attempt and advance the student's grade.

    The score is recomputed from stored answer keys; whatever the client
    computed is ignored. Only the first attempt per calendar day (school
    timezone) is recorded. The progress row is locked while the record is
    written so two submissions on the same day cannot both count.
    """
    if today is None:
        today = today_local()

    if not question_ids or len(student_answers) != len(question_ids):
        return {'success': False, 'message': "問題データの検証に失敗しました"}

    questions = get_questions_by_ids(subject_id, question_ids)
    if len(questions) != len(question_ids):
        return {'success': False, 'message': "問題データの検証に失敗しました"}
    ordered = order_by_ids(questions, question_ids)
    score = verify_score(questions, question_ids, student_answers)
    graded = grade_quiz(ordered, student_answers)

    grades = get_grades_for_subject(subject_id)

    with get_session() as session:
        progress = session.exec(
            select(StudentSubjectProgress)
            .where(
                StudentSubjectProgress.student_id == student_id,
                StudentSubjectProgress.subject_id == subject_id,
            )
            .with_for_update()
        ).first()
        if not progress:
            return {'success': False, 'message': "生徒情報が見つかりません"}

        if progress.last_challenge_date == today:
            logger.info("Student %s already challenged subject %s on %s", student_id, subject_id, today)
            return {
                'success': True,
                'skipped': True,
                'message': "本日の記録はすでに保存されています",
            }

        grade = _find_grade(grades, progress.current_grade)
        if not grade:
            return {'success': False, 'message': "グレード定義が見つかりません"}

        passed = is_passing(score, grade.pass_score)
        advancement = calculate_grade_advancement(
            progress.current_grade,
            progress.consecutive_pass_days,
            passed,
            progress.last_challenge_date,
            grades,
            today=today,
        )

        record = QuizRecord(
            student_id=student_id,
            subject_id=subject_id,
            grade=progress.current_grade,
            score=score,
            passed=passed,
            question_ids=json.dumps(list(question_ids)),
            student_answers=json.dumps(list(student_answers)),
            correct_answers=json.dumps(graded['correct_answers']),
        )
        session.add(record)

        progress.current_grade = advancement.new_grade
        progress.consecutive_pass_days = advancement.new_streak
        progress.last_challenge_date = today
        progress.updated_at = now_utc()
        session.add(progress)
        session.commit()
        session.refresh(record)

    if advancement.advanced:
        logger.info(
            "Student %s advanced from %s to %s in subject %s",
            student_id, record.grade, advancement.new_grade, subject_id,
        )

    return {
        'success': True,
        'record_id': record.id,
        'score': score,
        'passed': passed,
        'results': graded['results'],
        'advancement': advancement.to_dict(),
    }
