from datetime import datetime
from types import SimpleNamespace

from quizportal.csv_codec import BOM, parse_rows
from quizportal.export import (
    NO_GRADE,
    RECORD_EXPORT_HEADER,
    STUDENT_EXPORT_HEADER,
    aggregate_stats_by_student,
    aggregate_student_stats,
    build_records_csv,
    build_students_csv,
    format_record_row,
    format_student_row,
    grade_range_filter,
    round1,
)

LADDER = ['10級', '9級', '8級', '7級', '6級', '5級']


def student(id=1, name='山田'):
    return SimpleNamespace(id=id, year=2, class_number=3, number=14, name=name)


def test_grade_range_filter():
    assert grade_range_filter(LADDER, '9級', '7級') == ['9級', '8級', '7級']
    assert grade_range_filter(LADDER, '8級', None) == ['8級', '7級', '6級', '5級']
    assert grade_range_filter(LADDER, None, '9級') == ['10級', '9級']
    assert grade_range_filter(LADDER, None, None) is None
    assert grade_range_filter(LADDER, '1級', '') is None
    assert grade_range_filter(LADDER, '7級', '9級') == []


def test_round1():
    assert round1(66.666) == 66.7
    assert round1(82.25) == 82.3
    assert round1(50) == 50


def test_aggregate_student_stats():
    assert aggregate_student_stats([]) == {'count': 0, 'total_score': 0, 'max_score': 0, 'pass_count': 0}
    stats = aggregate_student_stats([
        {'score': 80, 'passed': True},
        {'score': 40, 'passed': False},
        {'score': 100, 'passed': True},
    ])
    assert stats == {'count': 3, 'total_score': 220, 'max_score': 100, 'pass_count': 2}


def test_aggregate_by_student():
    records = [
        SimpleNamespace(student_id=1, score=60, passed=False),
        SimpleNamespace(student_id=2, score=90, passed=True),
        SimpleNamespace(student_id=1, score=100, passed=True),
    ]
    stats = aggregate_stats_by_student(records)
    assert stats[1] == {'count': 2, 'total_score': 160, 'max_score': 100, 'pass_count': 1}
    assert stats[2]['count'] == 1


def test_format_student_row_with_records():
    progress = SimpleNamespace(current_grade='9級', consecutive_pass_days=2, last_challenge_date='2024-06-05')
    stats = {'count': 3, 'total_score': 200, 'max_score': 100, 'pass_count': 2}
    row = format_student_row(student(), progress, stats)
    assert row == [2, 3, 14, '山田', '9級', 2, '2024-06-05', 3, 66.7, 100, '66.7%']


def test_format_student_row_without_progress_or_records():
    row = format_student_row(student())
    assert row == [2, 3, 14, '山田', NO_GRADE, 0, '', 0, 0, 0, '0%']


def test_format_student_row_whole_percentages():
    stats = {'count': 2, 'total_score': 160, 'max_score': 90, 'pass_count': 1}
    row = format_student_row(student(), None, stats)
    assert row[8] == 80
    assert row[10] == '50%'


def test_format_record_row():
    record = SimpleNamespace(student_id=1, taken_at=datetime(2024, 6, 5, 1, 2, 3), grade='10級', score=80, passed=True)
    assert format_record_row(record, student()) == [2, 3, 14, '山田', '2024-06-05', '10級', 80, '合格']
    failed = {'student_id': 1, 'taken_at': '2024-06-04T23:00:00+00:00', 'grade': '10級', 'score': 20, 'passed': False}
    assert format_record_row(failed, student())[4:] == ['2024-06-04', '10級', 20, '不合格']


def test_build_students_csv():
    text = build_students_csv([student(1, '山田, 太郎'), student(2, '佐藤')])
    assert text.startswith(BOM)
    rows = parse_rows(text[len(BOM):])
    assert rows[0] == STUDENT_EXPORT_HEADER
    assert rows[1][3] == '山田, 太郎'
    assert rows[2][4] == NO_GRADE
    assert '\r\n' in text


def test_build_records_csv():
    records = [SimpleNamespace(student_id=1, taken_at=datetime(2024, 6, 5), grade='10級', score=100, passed=True)]
    text = build_records_csv(records, {1: student()})
    rows = parse_rows(text[len(BOM):])
    assert rows == [RECORD_EXPORT_HEADER, ['2', '3', '14', '山田', '2024-06-05', '10級', '100', '合格']]
