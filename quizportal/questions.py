import logging
from typing import Any, Dict, List, Sequence

from sqlmodel import select

from quizportal.db import get_session
from quizportal.models import Question
from quizportal.validation import parse_question_csv, sort_row_errors, validate_question_input

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('question_text', 'choice_1', 'choice_2', 'choice_3', 'choice_4', 'correct_answer')


def _find(session, subject_id: int, question_id: int):
    return session.exec(
        select(Question).where(Question.subject_id == subject_id, Question.question_id == question_id)
    ).first()


def get_question(subject_id: int, question_id: int):
    with get_session() as session:
        return _find(session, subject_id, question_id)


def get_questions_for_subject(subject_id: int):
    with get_session() as session:
        q = select(Question).where(Question.subject_id == subject_id).order_by(Question.question_id)
        return list(session.exec(q))


def get_questions_in_range(subject_id: int, start_id: int, end_id: int):
    """Questions whose question_id lies in [start_id, end_id]."""
    with get_session() as session:
        q = select(Question).where(
            Question.subject_id == subject_id,
            Question.question_id >= start_id,
            Question.question_id <= end_id,
        )
        return list(session.exec(q))


def get_questions_by_ids(subject_id: int, question_ids: Sequence[int]):
    """Stored questions for the given ids, in no particular order."""
    if not question_ids:
        return []
    with get_session() as session:
        q = select(Question).where(
            Question.subject_id == subject_id,
            Question.question_id.in_(list(question_ids)),
        )
        return list(session.exec(q))


def create_question(subject_id: int, question_id: int, question_text: str,
                    choice_1: str, choice_2: str, choice_3: str, choice_4: str,
                    correct_answer: int) -> dict:
    data = {
        'question_id': question_id,
        'question_text': question_text,
        'choice_1': choice_1,
        'choice_2': choice_2,
        'choice_3': choice_3,
        'choice_4': choice_4,
        'correct_answer': correct_answer,
    }
    valid, error = validate_question_input(data)
    if not valid:
        return {'success': False, 'message': error}

    with get_session() as session:
        if _find(session, subject_id, question_id):
            return {'success': False, 'message': f"問題ID {question_id} はすでに使用されています"}
        question = Question(subject_id=subject_id, **data)
        session.add(question)
        session.commit()
        session.refresh(question)
        return {'success': True, 'question': question}


def update_question(subject_id: int, question_id: int, **changes) -> dict:
    """Replace editable fields; the question_id (identity) is kept."""
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update question fields: {sorted(unknown)}")

    with get_session() as session:
        question = _find(session, subject_id, question_id)
        if not question:
            return {'success': False, 'message': "問題が見つかりません"}
        data = {k: getattr(question, k) for k in EDITABLE_FIELDS}
        data.update(changes)
        data['question_id'] = question_id
        valid, error = validate_question_input(data)
        if not valid:
            return {'success': False, 'message': error}
        for key in EDITABLE_FIELDS:
            setattr(question, key, data[key])
        session.add(question)
        session.commit()
        session.refresh(question)
        return {'success': True, 'question': question}


def delete_question(subject_id: int, question_id: int) -> dict:
    with get_session() as session:
        question = _find(session, subject_id, question_id)
        if not question:
            return {'success': False, 'message': "問題が見つかりません"}
        session.delete(question)
        session.commit()
    return {'success': True}


def import_questions(subject_id: int, rows: List[Dict[str, Any]]) -> dict:
    """Upsert question rows keyed by question_id.

    Every invalid row yields exactly one error; valid rows are still saved.
    """
    errors: List[str] = []
    valid_rows: Dict[int, Dict[str, Any]] = {}
    for i, row in enumerate(rows, start=1):
        row_num = row.get('row_num', i)
        valid, error = validate_question_input(row, row_num)
        if not valid:
            errors.append(error)
            continue
        # a later row with the same id wins
        valid_rows[row['question_id']] = row

    inserted = 0
    updated = 0
    if valid_rows:
        with get_session() as session:
            existing = {
                q.question_id: q
                for q in session.exec(
                    select(Question).where(
                        Question.subject_id == subject_id,
                        Question.question_id.in_(list(valid_rows)),
                    )
                )
            }
            for question_id, row in valid_rows.items():
                fields = {k: row[k] for k in EDITABLE_FIELDS}
                question = existing.get(question_id)
                if question is None:
                    session.add(Question(subject_id=subject_id, question_id=question_id, **fields))
                    inserted += 1
                else:
                    for key, value in fields.items():
                        setattr(question, key, value)
                    session.add(question)
                    updated += 1
            session.commit()

    logger.info(
        "Question import for subject %s: %d inserted, %d updated, %d errors",
        subject_id, inserted, updated, len(errors),
    )
    return {'success': not errors, 'inserted': inserted, 'updated': updated, 'errors': errors}


def import_questions_csv(subject_id: int, text: str) -> dict:
    """Parse question CSV text and import it; CSV row errors are reported alongside."""
    rows, parse_errors = parse_question_csv(text)
    result = import_questions(subject_id, rows)
    result['errors'] = sort_row_errors(parse_errors + result['errors'])
    result['success'] = not result['errors']
    return result
