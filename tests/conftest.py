import pytest

import quizportal.db as db
from quizportal.db import create_db_engine, init_db
from quizportal.grades import create_grade
from quizportal.questions import import_questions
from quizportal.students import create_student
from quizportal.subjects import create_subject


@pytest.fixture(autouse=True)
def reset_db(tmp_path, monkeypatch):
    # each test gets its own sqlite file
    engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setattr(db, "engine", engine)
    init_db()
    yield
    engine.dispose()


@pytest.fixture
def subject_with_ladder():
    """A subject with two grades (10級 then 9級) and questions 1..10."""
    subject = create_subject('数学', 0)['subject']
    create_grade(subject.id, '10級', 0, 1, 5, 3, 60, 2)
    create_grade(subject.id, '9級', 1, 6, 10, 3, 60, 2)
    import_questions(subject.id, [
        {
            'question_id': qid,
            'question_text': f'問題{qid}',
            'choice_1': 'A',
            'choice_2': 'B',
            'choice_3': 'C',
            'choice_4': 'D',
            'correct_answer': qid % 4 + 1,
        }
        for qid in range(1, 11)
    ])
    return subject


@pytest.fixture
def student(subject_with_ladder):
    return create_student('taro@example.com', 1, 2, 3, '山田太郎')['student']
