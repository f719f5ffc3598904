"""Teacher dashboard figures: recent activity, grade distribution, pass-rate trend."""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd
from sqlmodel import select

from quizportal.dates import day_start_utc, recent_dates, to_local_date_string, today_local
from quizportal.db import get_session
from quizportal.grades import get_grade_names
from quizportal.models import QuizRecord, Student, StudentSubjectProgress
from quizportal.scoring import round_half_up

TREND_DAYS = 30


def _records_frame(records: Iterable[Any]) -> pd.DataFrame:
    rows = [
        {
            'date': to_local_date_string(r.taken_at),
            'passed': bool(r.passed),
            'score': r.score,
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=['date', 'passed', 'score'])


def summarize_recent_records(records: Sequence[Any], today: Optional[str] = None) -> Dict[str, int]:
    """Today's attempt count plus pass rate (%) and mean score over ``records``."""
    today = today or today_local()
    df = _records_frame(records)
    if df.empty:
        return {'today_count': 0, 'pass_rate': 0, 'average_score': 0}
    return {
        'today_count': int((df['date'] == today).sum()),
        'pass_rate': round_half_up(df['passed'].mean() * 100),
        'average_score': round_half_up(df['score'].mean()),
    }


def grade_distribution(progress_rows: Iterable[Any], grade_names: Sequence[str], total_students: int) -> List[Dict[str, Any]]:
    """Share of students (%) sitting at each grade, in ladder order."""
    counts = pd.Series([p.current_grade for p in progress_rows], dtype="object").value_counts()
    result = []
    for name in grade_names:
        count = int(counts.get(name, 0))
        percentage = round_half_up(count / total_students * 100) if total_students > 0 else 0
        result.append({'grade_name': name, 'count': count, 'percentage': percentage})
    return result


def pass_rate_trend(records: Iterable[Any], days: int = TREND_DAYS, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Daily pass rate (%) for the last ``days`` days, oldest first; None on days without attempts."""
    dates = list(reversed(recent_dates(days, now)))
    df = _records_frame(records)
    if df.empty:
        return [{'date': d, 'rate': None} for d in dates]
    by_date = df.groupby('date')['passed'].agg(['sum', 'count'])
    trend = []
    for d in dates:
        if d in by_date.index:
            passed, total = by_date.loc[d, 'sum'], by_date.loc[d, 'count']
            trend.append({'date': d, 'rate': round_half_up(passed / total * 100)})
        else:
            trend.append({'date': d, 'rate': None})
    return trend


def get_dashboard(subject_id: int, year: Optional[int] = None, class_number: Optional[int] = None,
                  now: Optional[datetime] = None) -> Dict[str, Any]:
    since = recent_dates(TREND_DAYS, now)[-1]
    with get_session() as session:
        sq = select(Student)
        if year is not None:
            sq = sq.where(Student.year == year)
        if class_number is not None:
            sq = sq.where(Student.class_number == class_number)
        student_ids = [s.id for s in session.exec(sq)]

        records = []
        progress_rows = []
        if student_ids:
            records = list(session.exec(
                select(QuizRecord).where(
                    QuizRecord.subject_id == subject_id,
                    QuizRecord.student_id.in_(student_ids),
                    QuizRecord.taken_at >= day_start_utc(since),
                )
            ))
            progress_rows = list(session.exec(
                select(StudentSubjectProgress).where(
                    StudentSubjectProgress.subject_id == subject_id,
                    StudentSubjectProgress.student_id.in_(student_ids),
                )
            ))

    summary = summarize_recent_records(records, today_local(now))
    return {
        'total_students': len(student_ids),
        **summary,
        'grade_distribution': grade_distribution(progress_rows, get_grade_names(subject_id), len(student_ids)),
        'pass_rate_trend': pass_rate_trend(records, TREND_DAYS, now),
    }
