import argparse
import json
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from sqlmodel import select

from quizportal.db import get_session
from quizportal.migrations import upgrade_head
from quizportal.grades import create_grade
from quizportal.logging_config import setup_logging
from quizportal.models import QuizRecord, Subject
from quizportal.questions import import_questions
from quizportal.students import create_student, get_progress
from quizportal.subjects import create_subject


SEED_EMAIL_DOMAIN = "seed.example.com"
GRADE_LADDER = ["10級", "9級", "8級", "7級", "6級", "5級"]


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def main():
    parser = argparse.ArgumentParser(description="Seed a demo subject with grades, questions, students and records.")
    parser.add_argument("--subject", default="数学")
    parser.add_argument("--students", type=int, default=12)
    parser.add_argument("--questions-per-grade", type=int, default=10)
    parser.add_argument("--records", type=int, default=5, help="Past records per student.")
    args = parser.parse_args()

    logger = setup_logging()
    upgrade_head()
    random.seed(42)

    with get_session() as session:
        if session.exec(select(Subject).where(Subject.name == args.subject)).first():
            raise SystemExit(f"Subject already exists: {args.subject}")
        next_order = len(list(session.exec(select(Subject.id))))

    result = create_subject(args.subject, next_order)
    if not result['success']:
        raise SystemExit(result['message'])
    subject = result['subject']

    per_grade = args.questions_per_grade
    for order, name in enumerate(GRADE_LADDER):
        start = order * per_grade + 1
        create_grade(
            subject.id,
            grade_name=name,
            display_order=order,
            start_id=start,
            end_id=start + per_grade - 1,
            num_questions=min(5, per_grade),
            pass_score=80,
            required_consecutive_days=3,
        )

    rows = []
    for qid in range(1, per_grade * len(GRADE_LADDER) + 1):
        rows.append({
            'question_id': qid,
            'question_text': f"デモ問題 {qid}",
            'choice_1': f"{qid}",
            'choice_2': f"{qid + 1}",
            'choice_3': f"{qid + 2}",
            'choice_4': f"{qid + 3}",
            'correct_answer': random.randint(1, 4),
        })
    import_questions(subject.id, rows)

    student_ids = []
    for i in range(args.students):
        email = f"student{i + 1}@{SEED_EMAIL_DOMAIN}"
        created = create_student(email, year=i % 3 + 1, class_number=i % 4 + 1, number=i + 1, name=f"デモ生徒 {i + 1}")
        if created['success']:
            student_ids.append(created['student'].id)
        else:
            logger.warning("Skipping %s: %s", email, created['message'])

    with get_session() as session:
        for student_id in student_ids:
            progress = get_progress(student_id, subject.id)
            for day in range(args.records, 0, -1):
                score = random.choice([40, 60, 80, 100])
                session.add(QuizRecord(
                    student_id=student_id,
                    subject_id=subject.id,
                    grade=progress.current_grade,
                    score=score,
                    passed=score >= 80,
                    question_ids=json.dumps([]),
                    taken_at=_now_utc() - timedelta(days=day),
                ))
        session.commit()

    print(
        f"Seed complete for subject {subject.name}. "
        f"Students={len(student_ids)}, Grades={len(GRADE_LADDER)}, Questions={len(rows)}"
    )


if __name__ == "__main__":
    main()
