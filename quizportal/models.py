from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint
from datetime import datetime, timezone
import json


def now_utc():
    return datetime.now(timezone.utc)


class Subject(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    display_order: int = Field(unique=True)
    created_at: datetime = Field(default_factory=now_utc)


class Student(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    year: int
    class_number: int
    number: int
    name: str
    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)


class GradeDefinition(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("subject_id", "grade_name"),
        UniqueConstraint("subject_id", "display_order"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    subject_id: int = Field(foreign_key="subject.id", index=True)
    grade_name: str
    display_order: int
    start_id: int  # inclusive question_id range
    end_id: int
    num_questions: int
    pass_score: int
    required_consecutive_days: int = Field(default=1)
    created_at: datetime = Field(default_factory=now_utc)


class Question(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("subject_id", "question_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    subject_id: int = Field(foreign_key="subject.id", index=True)
    question_id: int = Field(index=True)
    question_text: str
    choice_1: str
    choice_2: str
    choice_3: str
    choice_4: str
    correct_answer: int  # 1-based
    created_at: datetime = Field(default_factory=now_utc)


class StudentSubjectProgress(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("student_id", "subject_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="student.id", index=True)
    subject_id: int = Field(foreign_key="subject.id", index=True)
    current_grade: str
    consecutive_pass_days: int = Field(default=0)
    last_challenge_date: Optional[str] = None  # YYYY-MM-DD, school timezone
    updated_at: datetime = Field(default_factory=now_utc)


class QuizRecord(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="student.id", index=True)
    subject_id: int = Field(foreign_key="subject.id", index=True)
    grade: str
    score: int
    passed: bool
    question_ids: str = "[]"  # JSON list
    student_answers: str = "[]"  # JSON list, 0-based
    correct_answers: str = "[]"  # JSON list, 0-based
    taken_at: datetime = Field(default_factory=now_utc, index=True)

    def as_dict(self) -> dict:
        return {
            'id': self.id,
            'student_id': self.student_id,
            'subject_id': self.subject_id,
            'grade': self.grade,
            'score': self.score,
            'passed': self.passed,
            'question_ids': json.loads(self.question_ids),
            'student_answers': json.loads(self.student_answers),
            'correct_answers': json.loads(self.correct_answers),
            'taken_at': self.taken_at.isoformat() if self.taken_at else None,
        }
