# ui/allocation_panel.py
import streamlit as st

from errors import (
    CapacityExceededError, DuplicateMembershipError, MembershipError, OperationPendingError,
    TransferPartialFailureError, TransportError,
)
from utils.allocation import (
    ALL, AllocationFilter, allocation_frame, filter_members, filter_options, fleet_stats,
)

PARTIAL_KEY = "partial_transfer"


def _filters_form(ctx, options) -> AllocationFilter:
    f = ctx.filters
    c1, c2, c3, c4 = st.columns(4)
    f.search = c1.text_input("Search", value=f.search)
    f.department = c2.selectbox("Department", [ALL] + options["department"], key="flt_dept")
    f.domain = c3.selectbox("Domain", [ALL] + options["domain"], key="flt_domain")
    f.role = c4.selectbox("Role", [ALL] + options["role"], key="flt_role")
    return f


def _render_transfer(ctx, views, projects):
    st.markdown("**Move a member**")
    names = {p.id: p.name for p in projects}
    member_ids = [v.user_id for v in views if v.projects]
    labels = {v.user_id: v.name for v in views}
    if not member_ids:
        st.info("Nobody is assigned to a project yet.")
        return

    c1, c2, c3 = st.columns(3)
    user_id = c1.selectbox("Member", member_ids, format_func=lambda i: labels.get(i, i), key="mv_user")
    sources = [a.project_id for v in views if v.user_id == user_id for a in v.projects]
    source = c2.selectbox("From", sources, format_func=lambda i: names.get(i, i), key="mv_from")
    target = c3.selectbox("To", list(names), format_func=lambda i: names.get(i, i), key="mv_to")

    busy = ctx.overlay.is_pending(target, user_id) or ctx.overlay.is_pending(source, user_id)
    if st.button("Move", disabled=busy):
        try:
            t = ctx.coordinator.transfer(user_id, source, target)
            if t.already_member:
                st.info(f"{labels.get(user_id)} is already a member of {t.target_project_name}")
            else:
                st.success(f"{labels.get(user_id)} moved to {t.target_project_name}")
        except DuplicateMembershipError:
            st.info(f"{labels.get(user_id)} is already assigned to {names.get(target, target)}")
        except TransferPartialFailureError as e:
            st.session_state[PARTIAL_KEY] = e.transfer
        except CapacityExceededError as e:
            st.warning(f"{names.get(target, target)}: {e}")
        except OperationPendingError as e:
            st.info(str(e))
        except MembershipError as e:
            st.error(f"Move failed, nothing changed: {e}")

    partial = st.session_state.get(PARTIAL_KEY)
    if partial is not None:
        st.warning(f"{labels.get(partial.user_id, partial.user_id)} is temporarily on both "
                   f"{names.get(partial.source_project_id)} and {names.get(partial.target_project_id)}.")
        if st.button("Retry removal"):
            try:
                ctx.coordinator.retry_removal(partial)
                st.session_state[PARTIAL_KEY] = None
                st.success("Removal completed")
            except TransferPartialFailureError as e:
                st.session_state[PARTIAL_KEY] = e.transfer
                st.error(f"Still could not remove: {e.cause}")


def render_allocation_panel(ctx):
    st.subheader("Team Allocation")
    try:
        projects = ctx.backend.list_projects()
        views = ctx.aggregator.members()
    except TransportError as e:
        st.error(f"Could not load allocation data: {e}")
        return

    filters = _filters_form(ctx, filter_options(views))
    shown = filter_members(views, filters)
    stats = fleet_stats(shown)

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Members", stats.total_members)
    m2.metric("Avg utilization", f"{stats.avg_utilization}%")
    m3.metric("Available hours", f"{stats.available_hours:g}")
    m4.metric("Overloaded", stats.overloaded_count)

    st.dataframe(allocation_frame(shown), use_container_width=True)
    _render_transfer(ctx, views, projects)
