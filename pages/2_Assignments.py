import json
import logging
import streamlit as st

from classroom.app_state import init_app
from classroom.courses import get_assignments_for_course, get_questions_for_assignment, get_student_courses
from classroom.errors import ClassroomError
from classroom.storage import UploadedFile
from classroom.submissions import FILE_UPLOAD, get_student_submissions, submit_assignment, submit_files, undo_submission
from classroom.ui import apply_global_styles, render_hero, render_sidebar, show_error

logger = logging.getLogger(__name__)

st.set_page_config(page_title="Assignments", page_icon="📝", layout="wide")

init_app()
apply_global_styles()
render_sidebar()

if st.session_state.user is None:
    st.info("Please log in first.")
    st.stop()

render_hero("Assignments", "Answer the questions and submit; quizzes are graded right away.")

user = st.session_state.user
courses = get_student_courses(user["id"])
if not courses:
    st.info("You are not enrolled in any course yet.")
    st.stop()

course = st.selectbox("Course", courses, format_func=lambda c: c.title)
assignments = get_assignments_for_course(course.id, published_only=True)
if not assignments:
    st.info("No published assignments in this course.")
    st.stop()

assignment = st.selectbox("Assignment", assignments, format_func=lambda a: a.title)
existing = get_student_submissions(assignment.id, user["id"])

if existing:
    sub = existing[0]
    st.metric("Score", f"{sub['score']} / {sub['max_score']}")
    st.caption(f"Status: {sub['status']}")
    for ans in sub["answers"]:
        mark = "✅" if ans["is_correct"] else "❌"
        st.write(f"{mark} Question {ans['question_id']}: {ans['answer_text'] or '-'} ({ans['points_earned']} pts)")
    for f in sub["files"]:
        st.write(f"📎 {f['original_name']} ({f['size']} bytes)")
    if assignment.subtype == FILE_UPLOAD and sub["status"] != "graded":
        if st.button("Undo submission"):
            try:
                result = undo_submission(assignment.id, user["id"], user["id"], False, storage=st.session_state.storage)
                st.success(result["message"])
                st.rerun()
            except ClassroomError as e:
                show_error(e)
    st.stop()

if assignment.subtype == FILE_UPLOAD:
    uploads = st.file_uploader("Files", accept_multiple_files=True)
    if st.button("Submit", type="primary"):
        files = [UploadedFile(u.name, u.getvalue(), u.type or "application/octet-stream") for u in uploads or []]
        try:
            submit_files(assignment.id, user["id"], files, st.session_state.storage)
            st.success("Submitted.")
            st.rerun()
        except ClassroomError as e:
            show_error(e)
    st.stop()

answers = []
for i, q in enumerate(get_questions_for_assignment(assignment.id), 1):
    st.markdown(f"**{i}. {q.text}** ({q.points} pts)")
    key = f"answer_{assignment.id}_{q.id}"
    if q.type == "true_false":
        value = st.radio("Answer", ["true", "false"], key=key, horizontal=True)
    elif q.type == "multiple_choice" and q.options:
        picked = st.multiselect("Answer", json.loads(q.options), key=key)
        value = ",".join(picked)
    elif q.type == "enumeration":
        value = st.text_area("One answer per line", key=key)
    else:
        value = st.text_input("Answer", key=key)
    answers.append({"question_id": q.id, "answer_text": value})

if st.button("Submit", type="primary"):
    try:
        result = submit_assignment(assignment.id, user["id"], answers)
        st.success(f"Submitted. Score: {result['score']} / {result['max_score']}")
        st.rerun()
    except ClassroomError as e:
        show_error(e)
    except Exception:
        logger.exception("Submission failed")
        st.error("Submission failed. Please try again.")
