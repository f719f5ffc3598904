import logging
from typing import Optional

from sqlmodel import func, select

from quizportal.db import get_session
from quizportal.models import GradeDefinition, StudentSubjectProgress
from quizportal.validation import validate_grade_input

logger = logging.getLogger(__name__)

GRADE_FIELDS = (
    'display_order',
    'start_id',
    'end_id',
    'num_questions',
    'pass_score',
    'required_consecutive_days',
)


def get_grades_for_subject(subject_id: int):
    """Grade definitions of a subject in ladder order."""
    with get_session() as session:
        q = (
            select(GradeDefinition)
            .where(GradeDefinition.subject_id == subject_id)
            .order_by(GradeDefinition.display_order)
        )
        return list(session.exec(q))


def get_grade_names(subject_id: int) -> list[str]:
    return [g.grade_name for g in get_grades_for_subject(subject_id)]


def get_first_grade_name(subject_id: int, session=None) -> str:
    """Starting grade for new students; empty while the subject has no grades."""
    q = (
        select(GradeDefinition.grade_name)
        .where(GradeDefinition.subject_id == subject_id)
        .order_by(GradeDefinition.display_order)
        .limit(1)
    )
    if session is not None:
        return session.exec(q).first() or ""
    with get_session() as s:
        return s.exec(q).first() or ""


def create_grade(
    subject_id: int,
    grade_name: str,
    display_order: int,
    start_id: int,
    end_id: int,
    num_questions: int,
    pass_score: int,
    required_consecutive_days: int,
) -> dict:
    data = {
        'grade_name': grade_name,
        'display_order': display_order,
        'start_id': start_id,
        'end_id': end_id,
        'num_questions': num_questions,
        'pass_score': pass_score,
        'required_consecutive_days': required_consecutive_days,
    }
    valid, error = validate_grade_input(data)
    if not valid:
        return {'success': False, 'message': error}

    with get_session() as session:
        same_name = session.exec(
            select(GradeDefinition).where(
                GradeDefinition.subject_id == subject_id,
                GradeDefinition.grade_name == grade_name,
            )
        ).first()
        if same_name:
            return {'success': False, 'message': f"グレード名「{grade_name}」はすでに使用されています"}
        same_order = session.exec(
            select(GradeDefinition).where(
                GradeDefinition.subject_id == subject_id,
                GradeDefinition.display_order == display_order,
            )
        ).first()
        if same_order:
            return {'success': False, 'message': f"表示順 {display_order} はすでに使用されています"}

        grade = GradeDefinition(subject_id=subject_id, **data)
        session.add(grade)
        session.flush()

        # students seeded before the subject had any grade start on the first rung
        first = get_first_grade_name(subject_id, session=session)
        unseeded = list(session.exec(
            select(StudentSubjectProgress).where(
                StudentSubjectProgress.subject_id == subject_id,
                StudentSubjectProgress.current_grade == "",
            )
        ))
        for progress in unseeded:
            progress.current_grade = first
            session.add(progress)

        session.commit()
        session.refresh(grade)

    logger.info("Created grade %s for subject %s", grade_name, subject_id)
    return {'success': True, 'grade': grade}


def update_grade(grade_id: int, **changes) -> dict:
    """Update a grade definition; the grade name itself cannot change."""
    unknown = set(changes) - set(GRADE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update grade fields: {sorted(unknown)}")

    with get_session() as session:
        grade = session.get(GradeDefinition, grade_id)
        if not grade:
            return {'success': False, 'message': "グレードが見つかりません"}

        data = {k: getattr(grade, k) for k in GRADE_FIELDS}
        data.update(changes)
        data['grade_name'] = grade.grade_name
        valid, error = validate_grade_input(data)
        if not valid:
            return {'success': False, 'message': error}

        same_order = session.exec(
            select(GradeDefinition).where(
                GradeDefinition.subject_id == grade.subject_id,
                GradeDefinition.display_order == data['display_order'],
                GradeDefinition.id != grade_id,
            )
        ).first()
        if same_order:
            return {'success': False, 'message': f"表示順 {data['display_order']} はすでに使用されています"}

        for key in GRADE_FIELDS:
            setattr(grade, key, data[key])
        session.add(grade)
        session.commit()
        session.refresh(grade)
        return {'success': True, 'grade': grade}


def delete_grade(grade_id: int) -> dict:
    with get_session() as session:
        grade = session.get(GradeDefinition, grade_id)
        if not grade:
            return {'success': False, 'message': "グレードが見つかりません"}

        in_use = session.exec(
            select(func.count()).select_from(StudentSubjectProgress).where(
                StudentSubjectProgress.subject_id == grade.subject_id,
                StudentSubjectProgress.current_grade == grade.grade_name,
            )
        ).one()
        if in_use:
            return {'success': False, 'message': f"このグレードは{in_use}名の生徒が使用中のため削除できません"}

        session.delete(grade)
        session.commit()
    logger.info("Deleted grade %s", grade_id)
    return {'success': True}


def find_grade_definition(subject_id: int, grade_name: str) -> Optional[GradeDefinition]:
    with get_session() as session:
        return session.exec(
            select(GradeDefinition).where(
                GradeDefinition.subject_id == subject_id,
                GradeDefinition.grade_name == grade_name,
            )
        ).first()
