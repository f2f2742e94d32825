import streamlit as st

from classroom.app_state import init_app
from classroom.errors import ClassroomError
from classroom.ui import apply_global_styles, render_hero, render_sidebar, show_error
from classroom.validators import validate_email, validate_new_password

st.set_page_config(page_title="Password reset", page_icon="🔑", layout="centered")

init_app()
apply_global_styles()
render_sidebar()

render_hero("Password reset", "Request a 6-digit code, verify it, then choose a new password.")

service = st.session_state.password_reset

if st.session_state.reset_token is None:
    st.subheader("1. Request a code")
    email = st.text_input("Email", key="reset_email_input")
    if st.button("Send code", type="primary"):
        try:
            result = service.request_otp(validate_email(email))
            st.session_state.reset_email = validate_email(email)
            st.success(result["message"])
        except ClassroomError as e:
            show_error(e)

    if st.session_state.reset_email:
        st.subheader("2. Enter the code")
        code = st.text_input("Code", max_chars=6, key="reset_code_input")
        if st.button("Verify code"):
            try:
                result = service.verify_otp(st.session_state.reset_email, code)
                st.session_state.reset_token = result["reset_token"]
                st.success(result["message"])
                st.rerun()
            except ClassroomError as e:
                show_error(e)
else:
    st.subheader("3. Choose a new password")
    new_password = st.text_input("New password", type="password")
    confirm = st.text_input("Repeat new password", type="password")
    if st.button("Reset password", type="primary"):
        if new_password != confirm:
            st.error("Passwords do not match.")
        else:
            try:
                result = service.reset_password(st.session_state.reset_token, validate_new_password(new_password))
                st.session_state.reset_token = None
                st.session_state.reset_email = None
                st.success(result["message"])
            except ClassroomError as e:
                show_error(e)
                if e.status_code == 401:
                    st.session_state.reset_token = None
