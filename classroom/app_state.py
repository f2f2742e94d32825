import streamlit as st

from classroom.logging_config import setup_logging
from classroom.db import init_db
from classroom.auth import LocalIdentityProvider
from classroom.mailer import Mailer
from classroom.password_reset import PasswordResetService
from classroom.storage import LocalFileStorage


def init_app():
    setup_logging()
    init_db()

    # collaborators are built once per browser session and handed to the
    # services explicitly; nothing below reaches for a global client
    if "mailer" not in st.session_state:
        mailer = Mailer()
        mailer.verify()
        st.session_state.mailer = mailer

    if "identity" not in st.session_state:
        st.session_state.identity = LocalIdentityProvider()

    if "storage" not in st.session_state:
        st.session_state.storage = LocalFileStorage()

    if "password_reset" not in st.session_state:
        st.session_state.password_reset = PasswordResetService(
            mailer=st.session_state.mailer,
            identity=st.session_state.identity,
        )

    if "user" not in st.session_state:
        st.session_state.user = None

    if "reset_email" not in st.session_state:
        st.session_state.reset_email = None

    if "reset_token" not in st.session_state:
        st.session_state.reset_token = None

    if "last_grading" not in st.session_state:
        st.session_state.last_grading = None
