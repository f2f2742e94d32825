import argparse
import random
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from sqlmodel import select

from classroom.auth import create_user
from classroom.courses import create_assignment, create_course, enroll_student, get_questions_for_assignment
from classroom.db import get_session, init_db
from classroom.errors import ClassroomError
from classroom.models import User
from classroom.submissions import submit_assignment


SEED_USER_PREFIX = "seed_student"
SEED_COURSE_PREFIX = "[SEED]"
SEED_PASSWORD = "Seed@1234"

QUESTIONS = [
    {
        "type": "multiple_choice",
        "text": "Which of these are inner planets?",
        "options": ["Mercury", "Jupiter", "Venus", "Saturn"],
        "correct_answers": ["Mercury", "Venus"],
        "points": 2,
    },
    {
        "type": "true_false",
        "text": "The Sun is a star.",
        "is_true": True,
        "points": 1,
    },
    {
        "type": "identification",
        "text": "Name the largest planet.",
        "correct_answers": ["Jupiter"],
        "points": 2,
    },
    {
        "type": "enumeration",
        "text": "List the first three planets from the Sun.",
        "correct_answers": ["Mercury", "Venus", "Earth"],
        "points": 9,
    },
]

ANSWER_POOL = [
    ["Mercury,Venus", "Mercury", "Jupiter"],
    ["true", "false"],
    ["jupiter", "Saturn"],
    ["Mercury\nVenus\nEarth", "Mercury\nVenus", "Mars"],
]


def _get_or_create_user(email, first_name, role):
    with get_session() as session:
        user = session.exec(select(User).where(User.email == email)).first()
    if user:
        return user
    return create_user(email, SEED_PASSWORD, first_name=first_name, last_name="Seed", role=role)


def main():
    parser = argparse.ArgumentParser(description="Seed a demo course with a graded quiz.")
    parser.add_argument("--students", type=int, default=8)
    args = parser.parse_args()

    random.seed(42)
    init_db()

    teacher = _get_or_create_user("seed_teacher@example.com", "Teacher", "teacher")
    course = create_course(f"{SEED_COURSE_PREFIX} Astronomy 101", teacher.id, description="Demo course")
    quiz = create_assignment(course.id, "Planets quiz", QUESTIONS, publish=True)
    create_assignment(course.id, "Star chart upload", subtype="file_upload", points=10, publish=True)
    questions = get_questions_for_assignment(quiz.id)

    for i in range(args.students):
        student = _get_or_create_user(f"{SEED_USER_PREFIX}+{i+1}@example.com", f"Student {i+1}", "student")
        enroll_student(course.id, student.id)
        answers = [
            {"question_id": q.id, "answer_text": random.choice(pool)}
            for q, pool in zip(questions, ANSWER_POOL)
        ]
        try:
            result = submit_assignment(quiz.id, student.id, answers)
            print(f"{student.email}: {result['score']}/{result['max_score']}")
        except ClassroomError as e:
            print(f"{student.email}: skipped ({e.message})")

    print(f"Seed complete for course {course.title} (id={course.id}). Teacher login: {teacher.email} / {SEED_PASSWORD}")


if __name__ == "__main__":
    main()
