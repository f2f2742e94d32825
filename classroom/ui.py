import logging
import streamlit as st

from classroom.auth import create_user, authenticate_user
from classroom.errors import ClassroomError, RateLimited
from classroom.validators import validate_email, validate_new_password

logger = logging.getLogger(__name__)


def apply_global_styles():
    st.markdown(
        """
        <style>
        :root {
            --bg-0: #0b0f14;
            --bg-1: #0f141b;
            --fg-0: #e6edf3;
            --fg-1: #c6d1dc;
            --accent: #4cc9f0;
        }

        .stApp {
            background: radial-gradient(1200px 600px at 15% -10%, #1a2230 0%, var(--bg-0) 60%);
            color: var(--fg-0);
        }

        .hero {
            padding: 1.5rem 1.75rem;
            background: linear-gradient(120deg, #141b24 0%, #0f141b 55%, #111925 100%);
            border: 1px solid #1f2a38;
            border-radius: 16px;
            margin-bottom: 1.5rem;
        }

        .hero p {
            color: var(--fg-1);
            margin: 0;
        }

        [data-testid="stSidebarNav"] {
            display: none;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


def render_hero(title: str, subtitle: str):
    st.markdown(
        f"""
        <div class="hero">
            <h2>{title}</h2>
            <p>{subtitle}</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


def show_error(err: ClassroomError):
    if isinstance(err, RateLimited) and err.retry_after:
        st.warning(f"{err.message} (retry in about {err.retry_after // 60} minutes)")
    elif err.status_code >= 500:
        st.error(err.message)
    else:
        st.warning(err.message)


def render_sidebar():
    with st.sidebar:
        st.header("Account")
        render_auth()
        st.divider()
        render_nav()


def render_auth():
    if st.session_state.user is None:
        auth_tab = st.selectbox("Account", ["Log in", "Sign up"], key="auth_tab")
        if auth_tab == "Log in":
            email = st.text_input("Email", key="login_email")
            password = st.text_input("Password", type="password", key="login_password")
            if st.button("Log in", key="login_btn"):
                try:
                    user = authenticate_user(email, password)
                    if user:
                        st.session_state.user = {
                            "id": user.id,
                            "email": user.email,
                            "role": user.role,
                            "first_name": user.first_name,
                        }
                        st.rerun()
                    else:
                        st.error("Wrong email or password")
                except Exception:
                    logger.exception("Login failed")
                    st.error("Could not log in. Please try again.")
        else:
            reg_email = st.text_input("Email", key="reg_email")
            reg_first = st.text_input("First name", key="reg_first")
            reg_last = st.text_input("Last name", key="reg_last")
            reg_password = st.text_input("Password", type="password", key="reg_password")
            role_choice = st.selectbox("Role", ["student", "teacher"], key="reg_role")
            if st.button("Sign up", key="reg_btn"):
                try:
                    create_user(
                        validate_email(reg_email),
                        validate_new_password(reg_password),
                        first_name=reg_first,
                        last_name=reg_last,
                        role=role_choice,
                    )
                    st.success("Account created. You can log in now.")
                except ClassroomError as e:
                    show_error(e)
                except ValueError as e:
                    st.error(str(e))
    else:
        name = st.session_state.user.get("first_name") or st.session_state.user.get("email")
        st.markdown(f"**Logged in as:** {name}")
        if st.button("Log out", key="logout_btn"):
            st.session_state.user = None
            st.rerun()


def render_nav():
    user = st.session_state.get("user")
    role = user.get("role") if user else None

    st.header("Menu")
    st.page_link("app.py", label="Home", icon="🏠")
    st.page_link("pages/1_Password_Reset.py", label="Forgot password", icon="🔑")
    if role == "student":
        st.page_link("pages/2_Assignments.py", label="My assignments", icon="📝")
    if role == "teacher":
        st.page_link("pages/3_Grading.py", label="Grading", icon="🏫")
