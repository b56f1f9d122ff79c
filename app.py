import streamlit as st

from infrastructure.observability import setup_observability
setup_observability()

from use_cases import auth_flow, bootstrap
from utils import session_manager
from views import health_records_view, login_view

# --- PAGE SETUP ---
st.set_page_config(page_title="Clinic Dashboard", layout="wide", initial_sidebar_state="expanded")

startup = bootstrap.run_startup()
auth_result = auth_flow.ensure_authenticated_session()
controller = session_manager.get_controller()

if auth_result.status == "STOP":
    if auth_result.reason == "identity_pending":
        st.info("Loading your profile...")
        st.stop()
    if controller is not None:
        login_view.render_auth_screen(controller)
    st.stop()

identity = controller.session.identity

with st.sidebar:
    if identity is not None:
        st.markdown(f"**{identity.full_name}**")
        st.caption(f"{identity.email} · {identity.role_name}")
    if controller.is_elevated():
        remaining = int(controller.session.elevated.expires_at - controller.now())
        st.success(f"🔓 Elevated access ({remaining}s left)")
    if st.button("Logout"):
        session_manager.logout()

health_records_view.render_health_records(controller)
