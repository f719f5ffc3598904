"""Statistics and row formatting for the teacher CSV exports."""
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from quizportal.csv_codec import format_number, generate_rows, with_bom

STUDENTS_EXPORT_FILENAME = "students_export.csv"
RECORDS_EXPORT_FILENAME = "records_export.csv"

STUDENT_EXPORT_HEADER = [
    "学年", "組", "番号", "氏名", "現在グレード", "連続合格日数",
    "最終挑戦日", "受験回数", "平均点", "最高点", "合格率",
]
RECORD_EXPORT_HEADER = ["学年", "組", "番号", "氏名", "受験日", "グレード", "スコア", "合否"]

PASS_LABEL = "合格"
FAIL_LABEL = "不合格"

NO_GRADE = "-"


def round1(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def grade_range_filter(
    grade_names: Sequence[str],
    grade_from: Optional[str],
    grade_to: Optional[str],
) -> Optional[List[str]]:
    """Grade names between ``grade_from`` and ``grade_to`` inclusive, in ladder order.

    Returns None (no filtering) when neither bound names a known grade; an
    unknown bound is treated as the matching end of the ladder.
    """
    index = {name: i for i, name in enumerate(grade_names)}
    from_index = index.get(grade_from, -1) if grade_from else -1
    to_index = index.get(grade_to, -1) if grade_to else -1
    if from_index == -1 and to_index == -1:
        return None
    start = from_index if from_index != -1 else 0
    stop = to_index + 1 if to_index != -1 else len(grade_names)
    return list(grade_names[start:stop])


def _empty_stats() -> Dict[str, int]:
    return {'count': 0, 'total_score': 0, 'max_score': 0, 'pass_count': 0}


def _add_record(stats: Dict[str, int], score: int, passed: bool) -> None:
    stats['count'] += 1
    stats['total_score'] += score
    if score > stats['max_score']:
        stats['max_score'] = score
    if passed:
        stats['pass_count'] += 1


def _field(record, name: str):
    if isinstance(record, Mapping):
        return record[name]
    return getattr(record, name)


def aggregate_student_stats(records: Iterable[Any]) -> Dict[str, int]:
    """Reduce ``{score, passed}`` records to count/total/max/pass counts."""
    stats = _empty_stats()
    for r in records:
        _add_record(stats, _field(r, 'score'), _field(r, 'passed'))
    return stats


def aggregate_stats_by_student(records: Iterable[Any]) -> Dict[Any, Dict[str, int]]:
    stats_map: Dict[Any, Dict[str, int]] = {}
    for r in records:
        stats = stats_map.setdefault(_field(r, 'student_id'), _empty_stats())
        _add_record(stats, _field(r, 'score'), _field(r, 'passed'))
    return stats_map


def format_student_row(student, progress=None, stats: Optional[Mapping[str, int]] = None) -> List[Any]:
    count = stats['count'] if stats else 0
    if count > 0:
        average = round1(stats['total_score'] / count)
        pass_rate = round1(stats['pass_count'] / count * 100)
        max_score = stats['max_score']
    else:
        average = 0
        pass_rate = 0
        max_score = 0

    last_challenge = progress.last_challenge_date if progress is not None else None
    return [
        student.year,
        student.class_number,
        student.number,
        student.name,
        progress.current_grade if progress is not None else NO_GRADE,
        progress.consecutive_pass_days if progress is not None else 0,
        last_challenge or "",
        count,
        average,
        max_score,
        f"{format_number(pass_rate)}%",
    ]


def _taken_at_text(taken_at) -> str:
    if isinstance(taken_at, str):
        return taken_at
    return taken_at.isoformat()


def format_record_row(record, student) -> List[Any]:
    return [
        student.year,
        student.class_number,
        student.number,
        student.name,
        _taken_at_text(_field(record, 'taken_at'))[:10],
        _field(record, 'grade'),
        _field(record, 'score'),
        PASS_LABEL if _field(record, 'passed') else FAIL_LABEL,
    ]


def build_students_csv(students, progress_by_student=None, stats_by_student=None) -> str:
    progress_by_student = progress_by_student or {}
    stats_by_student = stats_by_student or {}
    rows = [STUDENT_EXPORT_HEADER]
    for st in students:
        rows.append(format_student_row(
            st,
            progress_by_student.get(st.id),
            stats_by_student.get(st.id),
        ))
    return with_bom(generate_rows(rows))


def build_records_csv(records, students_by_id) -> str:
    rows = [RECORD_EXPORT_HEADER]
    for r in records:
        rows.append(format_record_row(r, students_by_id[_field(r, 'student_id')]))
    return with_bom(generate_rows(rows))
