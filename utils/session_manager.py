from collections import deque

import streamlit as st

"""
SESSION STATE CONTRACT

This module owns the Streamlit session state keys used by the clinic client.

controller: SessionController | None
    process-wide auth/step-up controller for this browser session
    default: None
    owner: use_cases/bootstrap

startup_done: bool
    set once run_startup has restored the session
    default: False
    owner: use_cases/bootstrap

notices: deque[(level, message)]
    notifications produced off the script thread (step-up timers/poller)
    default: deque(maxlen=20)
    owner: utils/session_manager

records_view: dict
    health records page state: page, stale, data, error. A plain dict so
    deferred operations finishing on the poller thread can mark it stale
    default: {"page": 1, "stale": True, "data": None, "error": None}
    owner: views/health_records_view

step_up_open: bool
    whether the step-up panel is shown
    default: False
    owner: views/step_up_view
"""

NOTICE_ICONS = {"success": "✅", "info": "📱", "warning": "⚠️", "error": "❌"}


def init_session_state():
    if 'controller' not in st.session_state:
        st.session_state.controller = None
    if 'startup_done' not in st.session_state:
        st.session_state.startup_done = False
    if 'notices' not in st.session_state:
        st.session_state.notices = deque(maxlen=20)
    if 'records_view' not in st.session_state:
        st.session_state.records_view = new_records_view()
    if 'step_up_open' not in st.session_state:
        st.session_state.step_up_open = False


def get_controller():
    return st.session_state.get("controller")


def get_notices() -> deque:
    init_session_state()
    return st.session_state.notices


def flush_notices():
    """Show queued notifications as transient toasts."""
    notices = st.session_state.get("notices")
    while notices:
        level, message = notices.popleft()
        st.toast(message, icon=NOTICE_ICONS.get(level))


def notify_result(result, success_message=None):
    if result.status == "CONTINUE":
        if success_message:
            st.toast(success_message, icon=NOTICE_ICONS["success"])
    elif result.message:
        st.toast(result.message, icon=NOTICE_ICONS["error"])


def new_records_view() -> dict:
    return {"page": 1, "stale": True, "data": None, "error": None}


def logout():
    controller = get_controller()
    if controller is not None:
        controller.logout()
    st.session_state.step_up_open = False
    st.session_state.records_view = new_records_view()
    st.rerun()
