"""Error types raised by the grading, submission and password-reset flows.

Every error carries an HTTP-like ``status_code`` so a host (Streamlit page,
API layer, script) can map it to a response without inspecting messages.
"""


class ClassroomError(Exception):
    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ClassroomError, ValueError):
    status_code = 400
    default_message = "Invalid input"


class UnknownQuestion(ValidationError):
    def __init__(self, question_id):
        self.question_id = question_id
        super().__init__(f"Question {question_id} not found in this assignment")


class InvalidOrExpiredOtp(ValidationError):
    default_message = "Invalid or expired OTP code"


class InvalidOrExpiredToken(ClassroomError):
    status_code = 401
    default_message = "Invalid or expired reset token"


class Forbidden(ClassroomError, PermissionError):
    status_code = 403
    default_message = "You do not have permission to perform this action"


class NotEnrolled(Forbidden):
    default_message = "You are not enrolled in this course"


class NotFound(ClassroomError, LookupError):
    status_code = 404
    default_message = "Not found"


class UserNotFound(NotFound):
    default_message = "User not found"


class Conflict(ClassroomError):
    status_code = 409
    default_message = "Conflict"


class DuplicateSubmission(Conflict):
    default_message = "You have already submitted this assignment"


class InvalidState(Conflict):
    default_message = "Operation not allowed in the current state"


class RateLimited(ClassroomError):
    status_code = 429
    default_message = "Too many requests. Please try again later."

    def __init__(self, message: str | None = None, retry_after: int | None = None):
        self.retry_after = retry_after
        super().__init__(message)


class UpstreamUnavailable(ClassroomError):
    status_code = 502
    default_message = "An upstream service failed"


class UndoIncomplete(UpstreamUnavailable):
    """Submission rows were removed but some stored files could not be deleted."""

    def __init__(self, orphaned_paths):
        self.orphaned_paths = list(orphaned_paths)
        super().__init__(
            f"Submission removed but {len(self.orphaned_paths)} stored file(s) could not be deleted"
        )
