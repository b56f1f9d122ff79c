import re

import streamlit as st

from utils import session_manager

OTP_PATTERN = re.compile(r"^\d{6}$")


def render_auth_screen(controller):
    session = controller.session
    st.title("🏥 Clinic Dashboard")
    if session.error:
        st.warning(session.error)

    if session.stage == "otp_required":
        _render_otp_form(controller)
    else:
        _render_login_form(controller)


def _render_login_form(controller):
    st.subheader("Sign in")
    with st.form("login_form", clear_on_submit=False):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in")
        if submitted:
            if not email.strip() or not password:
                st.error("Enter your email and password.")
                return
            result = controller.submit_login(email, password)
            session_manager.notify_result(result)
            if result.status == "CONTINUE":
                st.rerun()


def _render_otp_form(controller):
    st.subheader("Two-Factor Authentication")
    st.caption("Enter the 6-digit code sent to your device.")
    with st.form("otp_form", clear_on_submit=True):
        code = st.text_input("Code", max_chars=6)
        submitted = st.form_submit_button("Verify")
        if submitted:
            if not OTP_PATTERN.match(code.strip()):
                st.error("Please enter a valid 6-digit code.")
                return
            result = controller.verify_code(code.strip())
            session_manager.notify_result(result, success_message="Verification successful!")
            st.rerun()

    if st.button("Back to sign in"):
        controller.logout()
        st.rerun()
