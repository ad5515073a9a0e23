# main.py

#============================================================#
#                  SprintSync Team Allocation                #
#============================================================#
# Created     : 2025-10-15                                   #
# Version     : V1.1.0                                       #
#------------------------------------------------------------#
# Purpose     : Assign people to projects, move them between #
#               teams, and track utilization and pay rates   #
#               (SprintSync API or SQLite/Postgres powered)  #
#============================================================#

import streamlit as st

from config import configure_logging, load_settings
from errors import MembershipError
from services.context import AllocationContext
from ui.allocation_panel import render_allocation_panel
from ui.members_panel import render_members_panel, render_pay_calculator, render_profile_suggestion

def force_rerun():
    fn = getattr(st, "rerun", None) or getattr(st, "experimental_rerun", None)
    if fn:
        fn()

st.set_page_config(
    page_title="SprintSync - Team Allocation",
    layout="wide",
    initial_sidebar_state="collapsed",
)

@st.cache_resource
def _settings_once():
    settings = load_settings()
    configure_logging(settings.log_level)
    return settings

settings = _settings_once()

# ======================  SESSION  ======================
def sign_in():
    _, col, _ = st.columns([1, 2.2, 1])
    with col:
        with st.form("login_form", clear_on_submit=False):
            user_id = st.text_input("Your user id")
            submitted = st.form_submit_button("Continue", use_container_width=True)
        if submitted:
            if not user_id:
                st.warning("Please enter your user id.")
            else:
                st.session_state["ctx"] = AllocationContext.start(settings, current_user_id=user_id.strip())
                force_rerun()

def sign_out():
    ctx = st.session_state.pop("ctx", None)
    if ctx is not None:
        ctx.close()
    st.session_state.pop("selected_project_id", None)
    force_rerun()

ctx = st.session_state.get("ctx")
if ctx is None or ctx.closed:
    sign_in()
    st.stop()

with st.sidebar:
    st.caption(f"Signed in as **{ctx.current_user_id}**")
    if st.button("Sign out"):
        sign_out()
    st.markdown("---")
    try:
        projects = ctx.backend.list_projects()
    except MembershipError as e:
        st.error(f"Could not load projects: {e}")
        projects = []
    chosen = st.selectbox("Project", options=projects, format_func=lambda p: p.name) if projects else None
    if chosen is not None:
        st.session_state["selected_project_id"] = chosen.id

tab_alloc, tab_members, tab_pay = st.tabs(["Team Allocation", "Project Members", "Pay Rates"])

with tab_alloc:
    render_allocation_panel(ctx)

with tab_members:
    pid = st.session_state.get("selected_project_id")
    if pid:
        render_members_panel(ctx, pid)
    else:
        st.info("Pick a project in the sidebar.")
    with st.expander("Suggest a profile from a name"):
        render_profile_suggestion()

with tab_pay:
    render_pay_calculator()
