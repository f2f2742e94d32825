"""Assignment submission lifecycle.

A (assignment, student) pair moves through NONE -> SUBMITTED -> GRADED, and
can be sent back to NONE by an undo. NONE is the absence of a row; the
unique constraint on the submission table is what keeps it at most one.
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from classroom import config
from classroom.db import get_session
from classroom.errors import (
    DuplicateSubmission,
    Forbidden,
    InvalidState,
    NotEnrolled,
    NotFound,
    UndoIncomplete,
    UpstreamUnavailable,
    ValidationError,
)
from classroom.grading import QuestionKey, grade_answers, total_score
from classroom.models import (
    Assignment,
    AssignmentAnswer,
    AssignmentQuestion,
    AssignmentSubmission,
    Course,
    Enrollment,
    SubmissionFile,
    User,
    now_utc,
)
from classroom.storage import file_type_from_mime

logger = logging.getLogger(__name__)

QUIZ_FORM = "quiz_form"
FILE_UPLOAD = "file_upload"


class SubmissionStatus(str, Enum):
    NONE = "none"
    SUBMITTED = "submitted"
    GRADED = "graded"


TRANSITIONS = {
    (SubmissionStatus.NONE, SubmissionStatus.SUBMITTED),
    (SubmissionStatus.SUBMITTED, SubmissionStatus.GRADED),
    (SubmissionStatus.SUBMITTED, SubmissionStatus.NONE),
    (SubmissionStatus.GRADED, SubmissionStatus.NONE),
    # manual grading may be repeated or reverted by the instructor
    (SubmissionStatus.SUBMITTED, SubmissionStatus.SUBMITTED),
    (SubmissionStatus.GRADED, SubmissionStatus.GRADED),
    (SubmissionStatus.GRADED, SubmissionStatus.SUBMITTED),
}


def _check_transition(current, target) -> None:
    current, target = SubmissionStatus(current), SubmissionStatus(target)
    if (current, target) not in TRANSITIONS:
        raise InvalidState(f"Cannot move a submission from {current.value} to {target.value}")


def _find_submission(session, assignment_id: int, student_id: int) -> Optional[AssignmentSubmission]:
    q = select(AssignmentSubmission).where(
        AssignmentSubmission.assignment_id == assignment_id,
        AssignmentSubmission.student_id == student_id,
    )
    return session.exec(q).first()


def _format_submission(session, submission: AssignmentSubmission) -> Dict[str, Any]:
    answers = session.exec(
        select(AssignmentAnswer).where(AssignmentAnswer.submission_id == submission.id)
    ).all()
    files = session.exec(
        select(SubmissionFile).where(SubmissionFile.submission_id == submission.id)
    ).all()
    return {
        'id': submission.id,
        'assignment_id': submission.assignment_id,
        'student_id': submission.student_id,
        'score': submission.score,
        'max_score': submission.max_score,
        'status': submission.status,
        'submitted_at': submission.submitted_at.isoformat() if submission.submitted_at else None,
        'graded_at': submission.graded_at.isoformat() if submission.graded_at else None,
        'answers': [
            {
                'question_id': a.question_id,
                'answer_text': a.answer_text,
                'is_correct': a.is_correct,
                'points_earned': a.points_earned,
            }
            for a in answers
        ],
        'files': [
            {
                'id': f.id,
                'original_name': f.original_name,
                'file_type': f.file_type,
                'size': f.size,
                'storage_path': f.storage_path,
                'public_url': f.public_url,
            }
            for f in files
        ],
    }


def _open_for_submission(session, assignment_id: int, student_id: int) -> Assignment:
    """Checks shared by every submit path; returns the assignment."""
    assignment = session.exec(
        select(Assignment).where(Assignment.id == assignment_id, Assignment.is_published == True)  # noqa: E712
    ).first()
    if not assignment:
        raise NotFound("Assignment not found or not published")

    enrollment = session.exec(
        select(Enrollment).where(
            Enrollment.course_id == assignment.course_id,
            Enrollment.student_id == student_id,
            Enrollment.status == "active",
        )
    ).first()
    if not enrollment:
        raise NotEnrolled()

    # fast path only; the unique constraint is checked again on commit
    if _find_submission(session, assignment_id, student_id):
        raise DuplicateSubmission()
    _check_transition(SubmissionStatus.NONE, SubmissionStatus.SUBMITTED)
    return assignment


def _save_new_submission(session, submission: AssignmentSubmission, answers=(), graded=()) -> None:
    try:
        session.add(submission)
        session.flush()
        for ans, result in zip(answers, graded):
            session.add(AssignmentAnswer(
                submission_id=submission.id,
                question_id=result.question_id,
                answer_text=ans.get('answer_text'),
                is_correct=result.is_correct,
                points_earned=result.points_earned,
            ))
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.info(
            "Concurrent submission rejected for assignment %s student %s",
            submission.assignment_id, submission.student_id,
        )
        raise DuplicateSubmission()
    session.refresh(submission)


def _attach_files(session, submission: AssignmentSubmission, files, storage) -> None:
    """Upload files for a committed submission, deleting everything on failure."""
    stored_paths = []
    try:
        for f in files:
            stored = storage.upload(f, folder=f"assignment-submissions/{submission.id}")
            stored_paths.append(stored.storage_path)
            session.add(SubmissionFile(
                submission_id=submission.id,
                filename=stored.storage_path.rsplit('/', 1)[-1],
                original_name=f.original_name,
                mime_type=f.mime_type,
                file_type=file_type_from_mime(f.mime_type),
                size=f.size,
                storage_path=stored.storage_path,
                public_url=stored.public_url,
            ))
            session.flush()
        session.commit()
    except Exception as e:
        logger.exception("Submission file upload failed, removing submission %s", submission.id)
        session.rollback()
        _delete_submission_rows(session, submission.id)
        session.commit()
        for path in stored_paths:
            try:
                storage.delete(path)
            except Exception:
                logger.exception("Could not remove stored file %s", path)
        raise UpstreamUnavailable(f"Failed to upload submission file: {e}")


def _delete_submission_rows(session, submission_id: int) -> List[str]:
    """Stage deletion of a submission and its children; returns stored file paths."""
    files = session.exec(select(SubmissionFile).where(SubmissionFile.submission_id == submission_id)).all()
    paths = [f.storage_path for f in files]
    for f in files:
        session.delete(f)
    answers = session.exec(select(AssignmentAnswer).where(AssignmentAnswer.submission_id == submission_id)).all()
    for a in answers:
        session.delete(a)
    session.flush()
    submission = session.get(AssignmentSubmission, submission_id)
    if submission:
        session.delete(submission)
    return paths


def submit_assignment(assignment_id: int, student_id: int, answers: Iterable[Dict[str, Any]],
                      files=None, storage=None, distinct_matches: Optional[bool] = None,
                      clock=now_utc) -> Dict[str, Any]:
    """answers: list of {question_id, answer_text}.

    Grades every answer before writing anything, so an unknown question
    rejects the whole submission.
    """
    if files and storage is None:
        raise ValidationError("File storage is not available")
    if distinct_matches is None:
        distinct_matches = config.ENUMERATION_DISTINCT_MATCHES
    answers = list(answers or [])

    with get_session() as session:
        assignment = _open_for_submission(session, assignment_id, student_id)

        rows = session.exec(
            select(AssignmentQuestion).where(AssignmentQuestion.assignment_id == assignment_id)
        ).all()
        keys = {row.id: QuestionKey.from_row(row) for row in rows}
        graded = grade_answers(keys, answers, distinct_matches=distinct_matches)

        if assignment.subtype == QUIZ_FORM:
            max_score = sum(row.points or 0 for row in rows)
        else:
            # file_upload: flat points set on the assignment, graded by hand
            max_score = assignment.points or 0

        submission = AssignmentSubmission(
            assignment_id=assignment_id,
            student_id=student_id,
            max_score=max_score,
            score=total_score(graded),
            status=SubmissionStatus.SUBMITTED.value,
            submitted_at=clock(),
        )
        _save_new_submission(session, submission, answers, graded)

        if files:
            _attach_files(session, submission, files, storage)

        logger.info("Submission %s created: score %s/%s", submission.id, submission.score, submission.max_score)
        return _format_submission(session, submission)


def submit_files(assignment_id: int, student_id: int, files, storage, clock=now_utc) -> Dict[str, Any]:
    """Submit a file-upload assignment; the score stays 0 until graded by hand."""
    files = list(files or [])
    if not files:
        raise ValidationError("At least one file must be uploaded for file_upload assignments")

    with get_session() as session:
        assignment = _open_for_submission(session, assignment_id, student_id)
        if assignment.subtype != FILE_UPLOAD:
            raise ValidationError(
                "File submissions are only accepted for file_upload assignments. "
                "Use the standard submit for other types."
            )

        submission = AssignmentSubmission(
            assignment_id=assignment_id,
            student_id=student_id,
            max_score=assignment.points or 0,
            score=0,
            status=SubmissionStatus.SUBMITTED.value,
            submitted_at=clock(),
        )
        _save_new_submission(session, submission)
        _attach_files(session, submission, files, storage)
        return _format_submission(session, submission)


def grade_submission(submission_id: int, instructor_id: int, score: int,
                     mark_as_graded: bool = True, clock=now_utc) -> Dict[str, Any]:
    """Manual score override by the course instructor."""
    if score is None or score < 0:
        raise ValidationError("Score must be a non-negative number")

    with get_session() as session:
        q = (
            select(AssignmentSubmission)
            .join(Assignment, Assignment.id == AssignmentSubmission.assignment_id)
            .join(Course, Course.id == Assignment.course_id)
            .where(AssignmentSubmission.id == submission_id, Course.instructor_id == instructor_id)
        )
        submission = session.exec(q).first()
        if not submission:
            raise NotFound("Submission not found or you do not have permission to grade it")

        target = SubmissionStatus.GRADED if mark_as_graded else SubmissionStatus.SUBMITTED
        _check_transition(submission.status, target)

        submission.score = score
        submission.status = target.value
        submission.graded_at = clock() if mark_as_graded else None
        session.add(submission)
        session.commit()
        session.refresh(submission)
        return _format_submission(session, submission)


def undo_submission(assignment_id: int, student_id: int, actor_id: int, is_instructor: bool,
                    storage=None) -> Dict[str, Any]:
    """Delete a submission so the student can submit again.

    Instructors of the course may always undo. Students may undo only their
    own file-upload submission, and only before it is graded.
    """
    with get_session() as session:
        assignment = session.get(Assignment, assignment_id)
        if not assignment:
            raise NotFound("Assignment not found")
        course = session.get(Course, assignment.course_id)

        if is_instructor:
            if course is None or course.instructor_id != actor_id:
                raise Forbidden("You do not have permission to manage this assignment")
        else:
            if student_id != actor_id:
                raise Forbidden("You can only undo your own submission")
            if assignment.subtype != FILE_UPLOAD:
                raise InvalidState(
                    "Students can only undo file upload submissions. "
                    "Contact your instructor for other assignment types."
                )

        submission = _find_submission(session, assignment_id, student_id)
        if not submission:
            raise NotFound("No submission found for this student")
        if not is_instructor and submission.status == SubmissionStatus.GRADED.value:
            raise InvalidState("Cannot undo a graded submission. Please contact your instructor.")
        _check_transition(submission.status, SubmissionStatus.NONE)

        paths = _delete_submission_rows(session, submission.id)
        session.commit()

    orphaned = []
    if storage is not None:
        for path in paths:
            try:
                storage.delete(path)
            except Exception:
                logger.exception("Could not delete stored file %s", path)
                orphaned.append(path)
    if orphaned:
        raise UndoIncomplete(orphaned)

    return {
        'success': True,
        'message': (
            f"Submission for student {student_id} has been reset. The student can now resubmit the assignment."
            if is_instructor
            else "Your submission has been removed. You can now resubmit the assignment."
        ),
    }


def get_student_submissions(assignment_id: int, student_id: int) -> List[Dict[str, Any]]:
    with get_session() as session:
        q = (
            select(AssignmentSubmission)
            .where(
                AssignmentSubmission.assignment_id == assignment_id,
                AssignmentSubmission.student_id == student_id,
            )
            .order_by(AssignmentSubmission.submitted_at.desc())
        )
        return [_format_submission(session, s) for s in session.exec(q)]


def get_assignment_scores(assignment_id: int, instructor_id: int) -> List[Dict[str, Any]]:
    with get_session() as session:
        q = (
            select(Assignment)
            .join(Course, Course.id == Assignment.course_id)
            .where(Assignment.id == assignment_id, Course.instructor_id == instructor_id)
        )
        if not session.exec(q).first():
            raise NotFound("Assignment not found or you do not have permission to view scores")

        q = (
            select(AssignmentSubmission, User)
            .join(User, User.id == AssignmentSubmission.student_id)
            .where(AssignmentSubmission.assignment_id == assignment_id)
            .order_by(AssignmentSubmission.submitted_at.desc())
        )
        results = []
        for sub, student in session.exec(q):
            percentage = int(sub.score * 100 / sub.max_score + 0.5) if sub.max_score > 0 else 0
            results.append({
                'submission_id': sub.id,
                'student_id': sub.student_id,
                'student_name': " ".join(p for p in (student.first_name, student.last_name) if p),
                'student_email': student.email,
                'score': sub.score,
                'max_score': sub.max_score,
                'percentage': percentage,
                'status': sub.status,
                'submitted_at': sub.submitted_at.isoformat() if sub.submitted_at else None,
            })
        return results
