import streamlit as st

from utils import session_manager

STATUS_TEXT = {
    "initiating": "Initiating secure session...",
    "pending_approval": "Approve the request sent to your mobile device to continue.",
    "timed_out": "Authorization request timed out.",
}


@st.fragment(run_every=2)
def render_step_up_panel(controller):
    """Live status of the step-up request; closes itself once approved."""
    session_manager.flush_notices()
    coordinator = controller.step_up
    state = coordinator.state

    if state == "approved" and coordinator.deferred_running and st.session_state.step_up_open:
        st.info("Authorization successful! Completing your request...")
        return

    if state == "approved" or not st.session_state.step_up_open:
        coordinator.dismiss()
        st.session_state.step_up_open = False
        st.rerun()
        return

    with st.container(border=True):
        st.markdown("#### 🛡️ Session Authorization Required")
        st.caption("A high-security action requires approval from your registered mobile device.")

        if state == "error":
            st.error(coordinator.error_message)
        elif state in STATUS_TEXT:
            st.info(STATUS_TEXT[state])

        col_retry, col_cancel = st.columns(2)
        if state in ("timed_out", "error"):
            if col_retry.button("Retry", key="step_up_retry"):
                coordinator.retry()
                st.rerun(scope="fragment")
        if col_cancel.button("Cancel", key="step_up_cancel"):
            coordinator.dismiss()
            st.session_state.step_up_open = False
            st.rerun()
