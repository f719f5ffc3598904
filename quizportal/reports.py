"""Teacher CSV exports: fetch rows, aggregate and serialize."""
import logging
from typing import Optional, Tuple

from sqlalchemy import and_
from sqlmodel import func, select

from quizportal.dates import day_end_utc, day_start_utc
from quizportal.db import get_session
from quizportal.export import (
    RECORDS_EXPORT_FILENAME,
    STUDENTS_EXPORT_FILENAME,
    aggregate_stats_by_student,
    build_records_csv,
    build_students_csv,
    grade_range_filter,
)
from quizportal.grades import get_grade_names
from quizportal.models import QuizRecord, Student, StudentSubjectProgress

logger = logging.getLogger(__name__)

EXPORT_KINDS = ("students", "records")


def _student_query(subject_id: int, year: Optional[int], class_number: Optional[int], grade_filter):
    q = select(Student, StudentSubjectProgress).join(
        StudentSubjectProgress,
        and_(
            StudentSubjectProgress.student_id == Student.id,
            StudentSubjectProgress.subject_id == subject_id,
        ),
        isouter=True,
    )
    if year is not None:
        q = q.where(Student.year == year)
    if class_number is not None:
        q = q.where(Student.class_number == class_number)
    if grade_filter is not None:
        q = q.where(StudentSubjectProgress.current_grade.in_(grade_filter))
    return q.order_by(Student.year, Student.class_number, Student.number)


def _record_query(subject_id: int, student_ids, date_from: Optional[str], date_to: Optional[str]):
    q = select(QuizRecord).where(
        QuizRecord.subject_id == subject_id,
        QuizRecord.student_id.in_(student_ids),
    )
    if date_from:
        q = q.where(QuizRecord.taken_at >= day_start_utc(date_from))
    if date_to:
        q = q.where(QuizRecord.taken_at <= day_end_utc(date_to))
    return q


def export_students_csv(
    subject_id: int,
    year: Optional[int] = None,
    class_number: Optional[int] = None,
    grade_from: Optional[str] = None,
    grade_to: Optional[str] = None,
) -> Tuple[str, str]:
    """Per-student summary for one subject. Returns (filename, csv text)."""
    grade_filter = grade_range_filter(get_grade_names(subject_id), grade_from, grade_to)

    with get_session() as session:
        pairs = list(session.exec(_student_query(subject_id, year, class_number, grade_filter)))
        students = [s for s, _ in pairs]
        progress_by_student = {s.id: p for s, p in pairs if p is not None}
        records = []
        if students:
            records = list(session.exec(_record_query(subject_id, [s.id for s in students], None, None)))

    stats_by_student = aggregate_stats_by_student(records)
    logger.info("Exporting %d students for subject %s", len(students), subject_id)
    return STUDENTS_EXPORT_FILENAME, build_students_csv(students, progress_by_student, stats_by_student)


def export_records_csv(
    subject_id: int,
    year: Optional[int] = None,
    class_number: Optional[int] = None,
    grade_from: Optional[str] = None,
    grade_to: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> Tuple[str, str]:
    """Every quiz record of the selected students, newest first."""
    grade_filter = grade_range_filter(get_grade_names(subject_id), grade_from, grade_to)

    with get_session() as session:
        students = [s for s, _ in session.exec(_student_query(subject_id, year, class_number, grade_filter))]
        records = []
        if students:
            q = _record_query(subject_id, [s.id for s in students], date_from, date_to)
            q = q.order_by(QuizRecord.taken_at.desc(), QuizRecord.id.desc())
            records = list(session.exec(q))

    logger.info("Exporting %d records for subject %s", len(records), subject_id)
    students_by_id = {s.id: s for s in students}
    return RECORDS_EXPORT_FILENAME, build_records_csv(records, students_by_id)


def count_export_rows(
    kind: str,
    subject_id: int,
    year: Optional[int] = None,
    class_number: Optional[int] = None,
    grade_from: Optional[str] = None,
    grade_to: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> dict:
    """How many data rows an export would contain, for a preview before download."""
    if kind not in EXPORT_KINDS:
        return {'success': False, 'message': "type パラメータが不正です"}

    grade_filter = grade_range_filter(get_grade_names(subject_id), grade_from, grade_to)
    with get_session() as session:
        student_ids = [s.id for s, _ in session.exec(_student_query(subject_id, year, class_number, grade_filter))]
        if kind == "students":
            return {'success': True, 'count': len(student_ids)}
        if not student_ids:
            return {'success': True, 'count': 0}
        q = _record_query(subject_id, student_ids, date_from, date_to)
        count = session.exec(select(func.count()).select_from(q.subquery())).one()
        return {'success': True, 'count': count}
