from typing import Optional
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from datetime import datetime, timezone

def now_utc():
    return datetime.now(timezone.utc)

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True)
    password_hash: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = Field(default="student")  # admin|teacher|student
    created_at: datetime = Field(default_factory=now_utc)

class Course(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: Optional[str] = None
    instructor_id: int = Field(foreign_key="user.id")
    created_at: datetime = Field(default_factory=now_utc)

class Enrollment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="course.id")
    student_id: int = Field(foreign_key="user.id")
    status: str = Field(default="active")  # active|dropped
    enrolled_at: datetime = Field(default_factory=now_utc)

class Assignment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="course.id")
    title: str
    description: Optional[str] = None
    subtype: str = Field(default="quiz_form")  # quiz_form|file_upload
    points: int = Field(default=0)  # flat max score for non-quiz subtypes
    is_published: bool = Field(default=False)
    created_at: datetime = Field(default_factory=now_utc)

class AssignmentQuestion(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    assignment_id: int = Field(foreign_key="assignment.id")
    type: str  # multiple_choice|true_false|identification|enumeration
    text: str
    options: Optional[str] = None  # JSON
    points: int = Field(default=1)
    correct_answer: Optional[str] = None
    correct_answers: Optional[str] = None  # JSON list
    is_true: Optional[bool] = None
    case_sensitive: bool = Field(default=False)

class AssignmentSubmission(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_submission_assignment_student"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    assignment_id: int = Field(foreign_key="assignment.id", index=True)
    student_id: int = Field(foreign_key="user.id", index=True)
    score: int = Field(default=0)
    max_score: int = Field(default=0)
    status: str = Field(default="submitted")  # submitted|graded
    submitted_at: datetime = Field(default_factory=now_utc)
    graded_at: Optional[datetime] = None

class AssignmentAnswer(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    submission_id: int = Field(foreign_key="assignmentsubmission.id", index=True)
    question_id: int = Field(foreign_key="assignmentquestion.id")
    answer_text: Optional[str] = None
    is_correct: bool = Field(default=False)
    points_earned: int = Field(default=0)

class SubmissionFile(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    submission_id: int = Field(foreign_key="assignmentsubmission.id", index=True)
    filename: str
    original_name: str
    mime_type: str
    file_type: str  # image|video|pdf|document
    size: int = Field(default=0)
    storage_path: str
    public_url: Optional[str] = None
    created_at: datetime = Field(default_factory=now_utc)

class PasswordResetOtp(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    email: str = Field(index=True)
    otp_code: str
    created_at: datetime = Field(default_factory=now_utc)
    expires_at: datetime
    is_used: bool = Field(default=False)
