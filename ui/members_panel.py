# ui/members_panel.py
import streamlit as st
import pandas as pd

from errors import (
    CapacityExceededError, DuplicateMembershipError, MembershipError,
    OperationPendingError, TransportError,
)
from utils.capacity import ensure_can_add, ensure_role_change, validate
from utils.salary import derive_salary, validate_ctc, BASIC_SALARY_BY_TIER
from utils.suggestions import suggest_profile

MEMBER_ROLES = ["developer", "designer", "manager", "admin"]


def _roster_frame(roster, users_by_id, overlay, project_id) -> pd.DataFrame:
    pending = overlay.pending_for_project(project_id)
    data = [{"Name": getattr(users_by_id.get(m.user_id), "name", m.user_id),
             "Email": getattr(users_by_id.get(m.user_id), "email", ""),
             "Role": m.role,
             "Lead": "yes" if m.is_team_lead else "",
             "Allocation (%)": m.allocation_percentage,
             "Pending": pending.get(m.user_id, "")}
            for m in roster]
    return pd.DataFrame(data) if data else pd.DataFrame(
        columns=["Name", "Email", "Role", "Lead", "Allocation (%)", "Pending"])


def render_members_panel(ctx, project_id: str):
    st.subheader("Project Members")
    limits = ctx.settings.capacity_limits
    try:
        roster = ctx.store.get_roster(project_id)
        users_by_id = {u.id: u for u in ctx.backend.list_users()}
    except TransportError as e:
        st.error(f"Could not load the team: {e}")
        if st.button("Retry", key=f"reload_{project_id}"):
            ctx.store.invalidate(project_id)
        return

    report = validate(roster, **limits)
    st.caption(f"{report.team_size}/{report.max_members} team members"
               + (" • team full" if report.is_at_capacity else "")
               + (" • near capacity" if report.is_near_capacity and not report.is_at_capacity else ""))
    st.dataframe(_roster_frame(roster, users_by_id, ctx.overlay, project_id), use_container_width=True)

    candidates = [u for u in users_by_id.values() if u.id not in {m.user_id for m in roster}]
    with st.form(f"add_member_{project_id}", clear_on_submit=True):
        new_user = st.selectbox("User", candidates, format_func=lambda u: f"{u.name} ({u.email})")
        role_new = st.selectbox("Role", MEMBER_ROLES, index=0)
        is_lead = st.checkbox("Team lead", value=False)
        alloc = st.slider("Allocation (%)", 0, 100, 100)
        add_btn = st.form_submit_button("Add", disabled=not report.can_add)
    if add_btn and new_user:
        try:
            ensure_can_add(ctx.store.get_roster(project_id), role_new, **limits)
            ctx.store.add(project_id, new_user.id, role_new, is_team_lead=is_lead, allocation_percentage=alloc)
            st.success(f"Added {new_user.email} as {role_new}")
        except CapacityExceededError as e:
            st.warning(str(e))
        except DuplicateMembershipError:
            st.info(f"{new_user.name} is already on this project")
        except OperationPendingError as e:
            st.info(str(e))
        except MembershipError as e:
            st.error(f"Could not add member: {e}")

    for m in roster:
        name = getattr(users_by_id.get(m.user_id), "name", m.user_id)
        c1, c2, c3, c4 = st.columns([3, 2, 2, 1])
        c1.write(name)
        new_role = c2.selectbox("Role", MEMBER_ROLES,
                                index=MEMBER_ROLES.index(m.role) if m.role in MEMBER_ROLES else 0,
                                key=f"role_{project_id}_{m.user_id}", label_visibility="collapsed")
        new_alloc = c3.number_input("%", 0, 100, int(m.allocation_percentage),
                                    key=f"alloc_{project_id}_{m.user_id}", label_visibility="collapsed")
        busy = ctx.overlay.is_pending(project_id, m.user_id)
        if new_role != m.role or new_alloc != m.allocation_percentage:
            if c4.button("Save", key=f"save_{project_id}_{m.user_id}", disabled=busy or m.id is None,
                         help="This backend does not report membership ids" if m.id is None else None):
                try:
                    ensure_role_change(roster, m.user_id, new_role, **limits)
                    ctx.store.update(project_id, m.user_id, role=new_role, allocation_percentage=int(new_alloc))
                    st.success(f"Updated {name}")
                except MembershipError as e:
                    st.error(f"Could not update {name}: {e}")
        elif c4.button("Remove", key=f"rm_{project_id}_{m.user_id}", disabled=busy):
            try:
                ctx.store.remove(project_id, m.user_id)
                st.success(f"Removed {name}")
            except MembershipError as e:
                st.error(f"Could not remove {name}: {e}")


def render_pay_calculator():
    st.subheader("Pay rate from CTC")
    c1, c2 = st.columns(2)
    ctc = c1.text_input("Annual CTC (₹)", key="calc_ctc")
    tier = c2.selectbox("Experience", list(BASIC_SALARY_BY_TIER), key="calc_tier")
    if not ctc:
        return
    err = validate_ctc(ctc)
    if err:
        st.warning(err)
        return
    b = derive_salary(ctc, tier)
    if b.has_negative_balance:
        st.warning("CTC is below the fixed components for this tier; check the figure.")
    st.metric("Hourly rate (₹)", f"{b.hourly_rate:,.2f}")
    st.dataframe(pd.DataFrame([{
        "Basic": b.basic, "HRA": b.hra, "Conveyance": b.conveyance,
        "Balance": b.balance_allowance, "Gross": b.gross, "PF": b.pf,
        "PT": b.professional_tax, "Deductions": b.total_deductions,
        "Net": b.net_salary, "Annual net": b.annual_net,
    }]), use_container_width=True)


def render_profile_suggestion():
    name = st.text_input("New member name", key="suggest_name")
    s = suggest_profile(name)
    if s:
        st.caption("Suggested from the name; check before using.")
        st.json({"email": s.email, "role": s.role, "domain": s.domain, "department": s.department,
                 "experience": s.experience, "hourly_rate": s.hourly_rate, "skills": s.skills,
                 "budget": s.budget})
