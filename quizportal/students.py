import logging
from typing import Any, Dict, List, Optional

from sqlmodel import select

from quizportal.db import get_session
from quizportal.grades import get_first_grade_name
from quizportal.models import QuizRecord, Student, StudentSubjectProgress, Subject, now_utc
from quizportal.validation import parse_student_csv, sort_row_errors, validate_student_input

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('year', 'class_number', 'number', 'name')


def _seed_progress(session, student_id: int) -> None:
    """One progress row per subject, starting at the subject's first grade."""
    for subject_id in list(session.exec(select(Subject.id))):
        session.add(StudentSubjectProgress(
            student_id=student_id,
            subject_id=subject_id,
            current_grade=get_first_grade_name(subject_id, session=session),
        ))


def get_student(student_id: int):
    with get_session() as session:
        return session.get(Student, student_id)


def get_student_by_email(email: str):
    with get_session() as session:
        return session.exec(select(Student).where(Student.email == email)).first()


def get_students(year: Optional[int] = None, class_number: Optional[int] = None):
    with get_session() as session:
        q = select(Student)
        if year is not None:
            q = q.where(Student.year == year)
        if class_number is not None:
            q = q.where(Student.class_number == class_number)
        q = q.order_by(Student.year, Student.class_number, Student.number)
        return list(session.exec(q))


def create_student(email: str, year: int, class_number: int, number: int, name: str) -> dict:
    data = {'email': email, 'year': year, 'class_number': class_number, 'number': number, 'name': name}
    valid, error = validate_student_input(data)
    if not valid:
        return {'success': False, 'message': error}

    with get_session() as session:
        if session.exec(select(Student).where(Student.email == email)).first():
            return {'success': False, 'message': f"メールアドレス {email} はすでに登録されています"}
        student = Student(**data)
        session.add(student)
        session.flush()
        _seed_progress(session, student.id)
        session.commit()
        session.refresh(student)
        return {'success': True, 'student': student}


def update_student(student_id: int, **changes) -> dict:
    """Update roster fields; grade progress is never touched here."""
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update student fields: {sorted(unknown)}")

    with get_session() as session:
        student = session.get(Student, student_id)
        if not student:
            return {'success': False, 'message': "生徒が見つかりません"}
        data = {k: getattr(student, k) for k in EDITABLE_FIELDS}
        data.update(changes)
        data['email'] = student.email
        valid, error = validate_student_input(data)
        if not valid:
            return {'success': False, 'message': error}
        for key in EDITABLE_FIELDS:
            setattr(student, key, data[key])
        student.updated_at = now_utc()
        session.add(student)
        session.commit()
        session.refresh(student)
        return {'success': True, 'student': student}


def delete_student(student_id: int) -> dict:
    with get_session() as session:
        student = session.get(Student, student_id)
        if not student:
            return {'success': False, 'message': "生徒が見つかりません"}
        for model in (QuizRecord, StudentSubjectProgress):
            for row in list(session.exec(select(model).where(model.student_id == student_id))):
                session.delete(row)
        session.delete(student)
        session.commit()
    logger.info("Deleted student %s", student_id)
    return {'success': True}


def import_students(rows: List[Dict[str, Any]]) -> dict:
    """Insert new students and update existing ones (matched by email).

    Updates only change year/class/number/name so progress is preserved.
    """
    errors: List[str] = []
    valid_rows: Dict[str, Dict[str, Any]] = {}
    for i, row in enumerate(rows, start=1):
        valid, error = validate_student_input(row, row.get('row_num', i))
        if not valid:
            errors.append(error)
            continue
        valid_rows[row['email'].strip()] = row

    inserted = 0
    updated = 0
    if valid_rows:
        with get_session() as session:
            existing = {
                s.email: s
                for s in session.exec(select(Student).where(Student.email.in_(list(valid_rows))))
            }
            for email, row in valid_rows.items():
                student = existing.get(email)
                if student is None:
                    student = Student(email=email, **{k: row[k] for k in EDITABLE_FIELDS})
                    session.add(student)
                    session.flush()
                    _seed_progress(session, student.id)
                    inserted += 1
                else:
                    for key in EDITABLE_FIELDS:
                        setattr(student, key, row[key])
                    student.updated_at = now_utc()
                    session.add(student)
                    updated += 1
            session.commit()

    logger.info("Student import: %d inserted, %d updated, %d errors", inserted, updated, len(errors))
    return {'success': not errors, 'inserted': inserted, 'updated': updated, 'errors': errors}


def import_students_csv(text: str) -> dict:
    rows, parse_errors = parse_student_csv(text)
    result = import_students(rows)
    result['errors'] = sort_row_errors(parse_errors + result['errors'])
    result['success'] = not result['errors']
    return result


def get_progress(student_id: int, subject_id: int):
    with get_session() as session:
        return session.exec(
            select(StudentSubjectProgress).where(
                StudentSubjectProgress.student_id == student_id,
                StudentSubjectProgress.subject_id == subject_id,
            )
        ).first()


def get_student_history(student_id: int, subject_id: Optional[int] = None) -> List[dict]:
    """Quiz records of a student, newest first."""
    with get_session() as session:
        q = select(QuizRecord).where(QuizRecord.student_id == student_id)
        if subject_id is not None:
            q = q.where(QuizRecord.subject_id == subject_id)
        q = q.order_by(QuizRecord.taken_at.desc(), QuizRecord.id.desc())
        return [r.as_dict() for r in session.exec(q)]
