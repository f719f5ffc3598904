from datetime import datetime, timezone

from quizportal.dates import (
    day_end_utc,
    day_start_utc,
    format_date_short,
    is_taken_today,
    recent_dates,
    to_local_date_string,
    today_local,
)
from quizportal.db import get_session
from quizportal.models import Student, Subject


def test_datetime_fields_are_timezone_aware():
    with get_session() as s:
        subject = Subject(name='TZ', display_order=0)
        s.add(subject)
        s.flush()
        assert subject.created_at.tzinfo is not None and subject.created_at.tzinfo == timezone.utc
        student = Student(email='tz@example.com', year=1, class_number=1, number=1, name='TZ')
        s.add(student)
        s.flush()
        assert student.updated_at.tzinfo == timezone.utc
        s.commit()


def test_today_follows_school_timezone():
    # 15:30 UTC is already the next day in Tokyo
    now = datetime(2024, 6, 5, 15, 30, tzinfo=timezone.utc)
    assert today_local(now) == '2024-06-06'
    assert today_local(datetime(2024, 6, 5, 14, 59, tzinfo=timezone.utc)) == '2024-06-05'


def test_naive_timestamps_are_read_as_utc():
    assert to_local_date_string(datetime(2024, 6, 5, 15, 30)) == '2024-06-06'
    assert to_local_date_string('2024-06-05T15:30:00Z') == '2024-06-06'
    assert to_local_date_string('2024-06-05T10:00:00+00:00') == '2024-06-05'


def test_recent_dates_newest_first():
    now = datetime(2024, 3, 1, 3, 0, tzinfo=timezone.utc)
    assert recent_dates(3, now) == ['2024-03-01', '2024-02-29', '2024-02-28']


def test_is_taken_today():
    assert is_taken_today('2024-06-05', today='2024-06-05')
    assert not is_taken_today('2024-06-04', today='2024-06-05')
    assert not is_taken_today(None, today='2024-06-05')
    assert not is_taken_today('', today='2024-06-05')


def test_format_date_short():
    assert format_date_short('2024-06-05') == '6/5'
    assert format_date_short('2024-12-31') == '12/31'


def test_day_bounds_in_utc():
    assert day_start_utc('2024-06-05') == datetime(2024, 6, 4, 15, 0, tzinfo=timezone.utc)
    assert day_end_utc('2024-06-05') == datetime(2024, 6, 5, 14, 59, 59, tzinfo=timezone.utc)
