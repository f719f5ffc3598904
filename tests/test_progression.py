from types import SimpleNamespace

import pytest

from quizportal.progression import calculate_grade_advancement, find_grade, next_grade
from quizportal.scoring import grade_quiz, is_passing


def grade(name, order, required=3):
    return SimpleNamespace(grade_name=name, display_order=order, required_consecutive_days=required)


GRADES = [grade('10級', 0), grade('9級', 1), grade('8級', 2, required=1)]
TODAY = '2024-06-05'


def test_pass_increments_streak():
    r = calculate_grade_advancement('10級', 1, True, '2024-06-04', GRADES, today=TODAY)
    assert r.new_streak == 2
    assert r.new_grade == '10級'
    assert not r.advanced
    assert not r.is_max_grade


def test_second_pass_same_day_keeps_streak():
    first = calculate_grade_advancement('10級', 1, True, '2024-06-04', GRADES, today=TODAY)
    second = calculate_grade_advancement('10級', first.new_streak, True, TODAY, GRADES, today=TODAY)
    assert first.new_streak == second.new_streak == 2
    assert not first.advanced and not second.advanced


def test_fail_resets_streak():
    r = calculate_grade_advancement('9級', 2, False, '2024-06-04', GRADES, today=TODAY)
    assert r.new_streak == 0
    assert r.new_grade == '9級'
    assert not r.advanced


def test_reaching_required_days_advances_and_resets():
    r = calculate_grade_advancement('10級', 2, True, '2024-06-04', GRADES, today=TODAY)
    assert r.advanced
    assert r.new_grade == '9級'
    assert r.new_streak == 0


def test_max_grade_never_advances():
    r = calculate_grade_advancement('8級', 5, True, '2024-06-04', GRADES, today=TODAY)
    assert r.is_max_grade
    assert not r.advanced
    assert r.new_grade == '8級'
    assert r.new_streak == 6


def test_unsorted_ladder_is_ordered_by_display_order():
    shuffled = [GRADES[2], GRADES[0], GRADES[1]]
    r = calculate_grade_advancement('10級', 2, True, None, shuffled, today=TODAY)
    assert r.new_grade == '9級'
    assert next_grade('9級', shuffled) == '8級'
    assert next_grade('8級', shuffled) is None
    assert find_grade('9級', shuffled).display_order == 1


def test_unknown_grade_raises():
    with pytest.raises(ValueError):
        calculate_grade_advancement('1級', 0, True, None, GRADES, today=TODAY)


def test_to_dict():
    r = calculate_grade_advancement('10級', 0, False, None, GRADES, today=TODAY)
    assert r.to_dict() == {'new_streak': 0, 'new_grade': '10級', 'advanced': False, 'is_max_grade': False}


def test_scored_attempt_feeds_advancement():
    ladder = [
        SimpleNamespace(grade_name='10級', display_order=0, required_consecutive_days=2, pass_score=60),
        SimpleNamespace(grade_name='9級', display_order=1, required_consecutive_days=2, pass_score=60),
    ]
    questions = [
        SimpleNamespace(question_id=i, correct_answer=key,
                        choice_1='a', choice_2='b', choice_3='c', choice_4='d')
        for i, key in ((1, 1), (2, 3), (3, 4))
    ]
    score = grade_quiz(questions, [0, 2, 0])['score']
    assert score == 67
    passed = is_passing(score, ladder[0].pass_score)
    r = calculate_grade_advancement('10級', 1, passed, '2024-06-04', ladder, today=TODAY)
    assert r.advanced
    assert r.new_grade == '9級'
    assert r.new_streak == 0
