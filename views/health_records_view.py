import datetime
from dataclasses import asdict, replace

import pandas as pd
import streamlit as st

import auth
from infrastructure.api_client import ApiError
from services import health_record_service
from use_cases import access_gate
from utils import session_manager
from views import step_up_view


def _guarded(action, success_message, records_view, notices):
    """Wraps a record operation so it can also run later, from the step-up poller."""
    def run():
        try:
            action()
            notices.append(("success", success_message))
        except (ApiError, auth.AuthError) as e:
            notices.append(("error", str(e)))
        finally:
            records_view["stale"] = True
    return run


def _edited_record(record, **changes):
    """Copy of `record` with the form values applied; blank notes become None."""
    if "notes" in changes:
        changes["notes"] = changes["notes"] or None
    return replace(record, **changes)


def _load(controller, records_view, page_size):
    try:
        records_view["data"] = health_record_service.fetch_health_records(
            controller, page=records_view["page"], limit=page_size
        )
        records_view["error"] = None
    except (ApiError, auth.AuthError) as e:
        records_view["error"] = str(e)
    records_view["stale"] = False


def _request_access(controller, operation=None):
    records_view = st.session_state.records_view

    def reload():
        records_view["stale"] = True

    result = access_gate.require_elevation(controller, operation=operation, reload=reload)
    if result.status == "DEFERRED":
        st.session_state.step_up_open = True
    st.rerun()


def render_health_records(controller, page_size: int = 10):
    st.header("🩺 Health Records")
    session_manager.flush_notices()

    records_view = st.session_state.records_view
    notices = st.session_state.notices
    identity = controller.session.identity
    can_write = access_gate.has_role(identity, access_gate.RECORD_WRITER_ROLE)

    if st.session_state.step_up_open:
        step_up_view.render_step_up_panel(controller)

    if not controller.is_elevated():
        with st.container(border=True):
            st.markdown("#### ⚠️ Authorization Required")
            st.caption(
                "Access to sensitive health records requires an authorized session. "
                "Please grant temporary access to continue."
            )
            if st.button("Authorize Access", disabled=st.session_state.step_up_open):
                _request_access(controller)
        return

    if records_view["stale"]:
        _load(controller, records_view, page_size)

    if records_view["error"]:
        st.error(records_view["error"])
        return

    page = records_view["data"]
    if page is None or not page.records:
        st.info("No health records found.")
    else:
        df = pd.DataFrame([asdict(r) for r in page.records])
        st.dataframe(df, hide_index=True, use_container_width=True)

    total = page.count if page is not None else 0
    total_pages = max(1, -(-total // page_size))
    col_prev, col_info, col_next = st.columns([1, 2, 1])
    if col_prev.button("← Prev", disabled=records_view["page"] <= 1):
        records_view["page"] -= 1
        records_view["stale"] = True
        st.rerun()
    col_info.caption(f"Page {records_view['page']} of {total_pages}")
    if col_next.button("Next →", disabled=records_view["page"] >= total_pages):
        records_view["page"] += 1
        records_view["stale"] = True
        st.rerun()

    if not can_write:
        return

    with st.expander("New health record"):
        with st.form("create_record_form", clear_on_submit=True):
            patient_id = st.number_input("Patient ID", min_value=1, step=1)
            record_date = st.date_input("Record date", value=datetime.date.today())
            diagnosis = st.text_input("Diagnosis")
            treatment = st.text_input("Treatment")
            notes = st.text_area("Notes")
            if st.form_submit_button("Create Record"):
                data = {
                    "patient_id": int(patient_id),
                    "record_date": record_date.isoformat(),
                    "diagnosis": diagnosis,
                    "treatment": treatment,
                    "notes": notes or None,
                }
                _request_access(controller, _guarded(
                    lambda: health_record_service.create_health_record(controller, data),
                    "Health record created successfully!", records_view, notices,
                ))

    if page is not None and page.records:
        with st.expander("Edit a health record"):
            by_id = {r.id: r for r in page.records}
            edit_id = st.selectbox("Record", list(by_id), key="edit_record_id")
            current = by_id[edit_id]
            with st.form(f"edit_record_form_{edit_id}"):
                record_date = st.text_input("Record date", value=current.record_date, key=f"edit_record_date_{edit_id}")
                diagnosis = st.text_input("Diagnosis", value=current.diagnosis, key=f"edit_diagnosis_{edit_id}")
                treatment = st.text_input("Treatment", value=current.treatment, key=f"edit_treatment_{edit_id}")
                notes = st.text_area("Notes", value=current.notes or "", key=f"edit_notes_{edit_id}")
                if st.form_submit_button("Save Changes"):
                    edited = _edited_record(
                        current,
                        record_date=record_date,
                        diagnosis=diagnosis,
                        treatment=treatment,
                        notes=notes,
                    )
                    _request_access(controller, _guarded(
                        lambda: health_record_service.update_health_record(controller, edited),
                        "Health record updated successfully!", records_view, notices,
                    ))

    if page is not None and page.records:
        with st.expander("Delete a health record"):
            record_id = st.selectbox("Record", [r.id for r in page.records], key="delete_record_id")
            if st.button("Delete", type="primary"):
                _request_access(controller, _guarded(
                    lambda: health_record_service.delete_health_record(controller, record_id),
                    "Health record deleted successfully!", records_view, notices,
                ))
