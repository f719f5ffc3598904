import logging

from sqlmodel import func, select

from quizportal.db import get_session
from quizportal.models import (
    GradeDefinition,
    Question,
    QuizRecord,
    Student,
    StudentSubjectProgress,
    Subject,
)
from quizportal.validation import validate_subject_input

logger = logging.getLogger(__name__)


def get_subjects():
    with get_session() as session:
        q = select(Subject).order_by(Subject.display_order)
        return list(session.exec(q))


def get_subject(subject_id: int):
    with get_session() as session:
        return session.get(Subject, subject_id)


def create_subject(name: str, display_order: int) -> dict:
    """Create a subject and a progress row for every existing student.

    A brand-new subject has no grades yet, so progress starts with an empty
    grade name; ``grades.create_grade`` fills it in when the first rung is added.
    """
    valid, error = validate_subject_input({'name': name, 'display_order': display_order})
    if not valid:
        return {'success': False, 'message': error}

    with get_session() as session:
        if session.exec(select(Subject).where(Subject.name == name)).first():
            return {'success': False, 'message': f"科目名「{name}」はすでに使用されています"}
        if session.exec(select(Subject).where(Subject.display_order == display_order)).first():
            return {'success': False, 'message': f"表示順 {display_order} はすでに使用されています"}

        subject = Subject(name=name.strip(), display_order=display_order)
        session.add(subject)
        session.flush()

        student_ids = list(session.exec(select(Student.id)))
        for student_id in student_ids:
            session.add(StudentSubjectProgress(
                student_id=student_id,
                subject_id=subject.id,
                current_grade="",
            ))
        session.commit()
        session.refresh(subject)

    logger.info("Created subject %s (%s) with %d progress rows", subject.id, subject.name, len(student_ids))
    return {'success': True, 'subject': subject}


def update_subject(subject_id: int, name: str, display_order: int) -> dict:
    valid, error = validate_subject_input({'name': name, 'display_order': display_order})
    if not valid:
        return {'success': False, 'message': error}

    with get_session() as session:
        subject = session.get(Subject, subject_id)
        if not subject:
            return {'success': False, 'message': "科目が見つかりません"}
        dup_name = session.exec(
            select(Subject).where(Subject.name == name, Subject.id != subject_id)
        ).first()
        if dup_name:
            return {'success': False, 'message': f"科目名「{name}」はすでに使用されています"}
        dup_order = session.exec(
            select(Subject).where(Subject.display_order == display_order, Subject.id != subject_id)
        ).first()
        if dup_order:
            return {'success': False, 'message': f"表示順 {display_order} はすでに使用されています"}
        subject.name = name.strip()
        subject.display_order = display_order
        session.add(subject)
        session.commit()
        session.refresh(subject)
        return {'success': True, 'subject': subject}


def delete_subject(subject_id: int) -> dict:
    """Delete a subject that has no grades, questions or records left."""
    with get_session() as session:
        subject = session.get(Subject, subject_id)
        if not subject:
            return {'success': False, 'message': "科目が見つかりません"}

        blockers = (
            (GradeDefinition, "件のグレード定義"),
            (Question, "件の問題"),
            (QuizRecord, "件の受験記録"),
        )
        for model, label in blockers:
            count = session.exec(
                select(func.count()).select_from(model).where(model.subject_id == subject_id)
            ).one()
            if count:
                return {'success': False, 'message': f"この科目には{count}{label}があるため削除できません"}

        for progress in list(session.exec(
            select(StudentSubjectProgress).where(StudentSubjectProgress.subject_id == subject_id)
        )):
            session.delete(progress)
        session.delete(subject)
        session.commit()
    logger.info("Deleted subject %s", subject_id)
    return {'success': True}
