import streamlit as st

from classroom.app_state import init_app
from classroom.courses import get_instructor_courses, get_student_courses
from classroom.ui import apply_global_styles, render_hero, render_sidebar

st.set_page_config(page_title="Classroom", page_icon="📚", layout="wide")

init_app()
apply_global_styles()
render_sidebar()

render_hero("Classroom", "Assignments, automatic grading and account recovery.")

user = st.session_state.user
if user is None:
    st.info("Log in from the sidebar. Forgot your password? Use the reset page.")
    st.stop()

if user["role"] == "teacher":
    courses = get_instructor_courses(user["id"])
    st.subheader("Courses you teach")
else:
    courses = get_student_courses(user["id"])
    st.subheader("Your courses")

if not courses:
    st.info("No courses yet.")
for course in courses:
    st.markdown(f"- **{course.title}**" + (f": {course.description}" if course.description else ""))
