import json
import logging
from typing import List, Dict, Any

from sqlmodel import select

from classroom.db import get_session
from classroom.grading import QUESTION_TYPES
from classroom.models import Course, Enrollment, Assignment, AssignmentQuestion

logger = logging.getLogger(__name__)


def create_course(title: str, instructor_id: int, description: str | None = None) -> Course:
    with get_session() as session:
        course = Course(title=title, description=description, instructor_id=instructor_id)
        session.add(course)
        session.commit()
        session.refresh(course)
        return course


def enroll_student(course_id: int, student_id: int) -> Enrollment:
    with get_session() as session:
        q = select(Enrollment).where(Enrollment.course_id == course_id, Enrollment.student_id == student_id)
        existing = session.exec(q).first()
        if existing:
            if existing.status != "active":
                existing.status = "active"
                session.add(existing)
                session.commit()
                session.refresh(existing)
            return existing
        enroll = Enrollment(course_id=course_id, student_id=student_id)
        session.add(enroll)
        session.commit()
        session.refresh(enroll)
        return enroll


def drop_student(course_id: int, student_id: int) -> bool:
    with get_session() as session:
        q = select(Enrollment).where(Enrollment.course_id == course_id, Enrollment.student_id == student_id)
        enroll = session.exec(q).first()
        if not enroll:
            return False
        enroll.status = "dropped"
        session.add(enroll)
        session.commit()
        return True


ASSIGNMENT_SUBTYPES = ("quiz_form", "file_upload")


def create_assignment(course_id: int, title: str, questions: List[Dict[str, Any]] | None = None,
                      subtype: str = "quiz_form", points: int = 0, publish: bool = False) -> Assignment:
    """questions: list of dicts: {type, text, points, correct_answer, correct_answers(list),
    is_true, case_sensitive, options(optional list)}

    The assignment and its questions are written in one transaction, so a
    bad question leaves no assignment behind.
    """
    if subtype not in ASSIGNMENT_SUBTYPES:
        raise ValueError(f"Unsupported assignment subtype: {subtype}")
    for q in questions or []:
        if q.get("type") not in QUESTION_TYPES:
            raise ValueError(f"Unsupported question type: {q.get('type')}")
        if q["type"] == "true_false" and q.get("is_true") is None:
            raise ValueError("true_false questions need is_true")

    with get_session() as session:
        try:
            assignment = Assignment(course_id=course_id, title=title, subtype=subtype, points=points,
                                    is_published=publish)
            session.add(assignment)
            session.flush()

            for q in questions or []:
                session.add(AssignmentQuestion(
                    assignment_id=assignment.id,
                    type=q["type"],
                    text=q.get("text", ""),
                    options=json.dumps(q["options"]) if q.get("options") is not None else None,
                    points=q.get("points", 1),
                    correct_answer=q.get("correct_answer"),
                    correct_answers=json.dumps(q["correct_answers"]) if q.get("correct_answers") else None,
                    is_true=q.get("is_true"),
                    case_sensitive=q.get("case_sensitive", False),
                ))
            session.commit()
        except Exception:
            session.rollback()
            logger.exception("Could not create assignment %r in course %s", title, course_id)
            raise
        session.refresh(assignment)

    return assignment


def publish_assignment(assignment_id: int, publish: bool = True) -> Assignment:
    with get_session() as session:
        assignment = session.get(Assignment, assignment_id)
        if not assignment:
            raise ValueError("Assignment not found")
        assignment.is_published = publish
        session.add(assignment)
        session.commit()
        session.refresh(assignment)
        return assignment


def get_questions_for_assignment(assignment_id: int):
    with get_session() as session:
        q = (
            select(AssignmentQuestion)
            .where(AssignmentQuestion.assignment_id == assignment_id)
            .order_by(AssignmentQuestion.id)
        )
        return list(session.exec(q))


def get_assignments_for_course(course_id: int, published_only: bool = False):
    with get_session() as session:
        q = select(Assignment).where(Assignment.course_id == course_id)
        if published_only:
            q = q.where(Assignment.is_published == True)  # noqa: E712
        return list(session.exec(q))


def get_student_courses(student_id: int):
    with get_session() as session:
        q = (
            select(Course)
            .join(Enrollment, Enrollment.course_id == Course.id)
            .where(Enrollment.student_id == student_id, Enrollment.status == "active")
        )
        return list(session.exec(q))


def get_instructor_courses(instructor_id: int):
    with get_session() as session:
        return list(session.exec(select(Course).where(Course.instructor_id == instructor_id)))
