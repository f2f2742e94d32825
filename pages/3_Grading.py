import pandas as pd
import streamlit as st

from classroom.app_state import init_app
from classroom.courses import get_assignments_for_course, get_instructor_courses
from classroom.errors import ClassroomError
from classroom.submissions import get_assignment_scores, grade_submission, undo_submission
from classroom.ui import apply_global_styles, render_hero, render_sidebar, show_error

st.set_page_config(page_title="Grading", page_icon="🏫", layout="wide")

init_app()
apply_global_styles()
render_sidebar()

if st.session_state.user is None:
    st.info("Please log in first.")
    st.stop()

user = st.session_state.user
if user.get("role") != "teacher":
    st.info("Grading is only available to teacher accounts.")
    st.stop()

render_hero("Grading", "Review scores, override grades and reset submissions.")

courses = get_instructor_courses(user["id"])
if not courses:
    st.info("You do not teach any course yet.")
    st.stop()

course = st.selectbox("Course", courses, format_func=lambda c: c.title)
assignments = get_assignments_for_course(course.id)
if not assignments:
    st.info("This course has no assignments.")
    st.stop()

assignment = st.selectbox("Assignment", assignments, format_func=lambda a: a.title)

try:
    scores = get_assignment_scores(assignment.id, user["id"])
except ClassroomError as e:
    show_error(e)
    st.stop()

if not scores:
    st.info("No submissions yet.")
    st.stop()

st.dataframe(pd.DataFrame(scores), use_container_width=True)

row = st.selectbox(
    "Submission",
    scores,
    format_func=lambda r: f"{r['student_name'] or r['student_email']} ({r['score']}/{r['max_score']}, {r['status']})",
)
col1, col2 = st.columns(2)
with col1:
    new_score = st.number_input("Score", min_value=0, value=int(row["score"]), step=1)
    mark = st.checkbox("Mark as graded", value=True)
    if st.button("Save grade", type="primary"):
        try:
            grade_submission(row["submission_id"], user["id"], int(new_score), mark_as_graded=mark)
            st.success("Grade saved.")
            st.rerun()
        except ClassroomError as e:
            show_error(e)
with col2:
    st.warning("Resetting deletes the submission so the student can submit again.")
    if st.button("Reset submission"):
        try:
            result = undo_submission(assignment.id, row["student_id"], user["id"], True, storage=st.session_state.storage)
            st.success(result["message"])
            st.rerun()
        except ClassroomError as e:
            show_error(e)
