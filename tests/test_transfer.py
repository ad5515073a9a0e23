# tests/test_transfer.py
import pytest

from config import Settings
from errors import (
    CapacityExceededError, DuplicateMembershipError, InvalidTransferStateError, MembershipNotFoundError,
    TransferPartialFailureError, TransportError,
)
from services.context import AllocationContext
from services.membership_store import MembershipStore
from services.transfer import Transfer, TransferCoordinator, TransferState


@pytest.fixture
def store(flaky):
    s = MembershipStore(flaky)
    s.add("A", "u1", "developer", allocation_percentage=50)
    return s


@pytest.fixture
def coordinator(store, backend):
    return TransferCoordinator(store, backend)


def _members(store, project_id):
    return [m.user_id for m in store.get_roster(project_id)]


def test_transfer_moves_member_and_walks_states(store, coordinator):
    t = coordinator.transfer("u1", "A", "B")
    assert t.state is TransferState.DONE
    assert t.history == [
        TransferState.IDLE, TransferState.ADDING_TO_TARGET, TransferState.REMOVING_FROM_SOURCE,
    ]
    assert t.target_project_name == "Beta"
    assert _members(store, "A") == []
    assert _members(store, "B") == ["u1"]


def test_transferred_member_keeps_source_role_with_full_allocation(store, coordinator):
    store.update("A", "u1", role="designer")
    coordinator.transfer("u1", "A", "B")
    m = store.find("B", "u1")
    assert (m.role, m.allocation_percentage, m.is_team_lead) == ("designer", 100, False)


def test_explicit_role_overrides_source_role(store, coordinator):
    coordinator.transfer("u1", "A", "B", role="manager")
    assert store.find("B", "u1").role == "manager"


def test_same_project_is_a_no_op(store, coordinator, flaky):
    flaky.calls.clear()
    t = coordinator.transfer("u1", "A", "A")
    assert t.already_member is True
    assert t.state is TransferState.DONE
    assert "add_to_project" not in flaky.calls
    assert "remove_from_project" not in flaky.calls
    assert _members(store, "A") == ["u1"]


def test_already_on_target_fails_without_touching_source(store, coordinator, flaky):
    store.add("B", "u1", "developer")
    flaky.calls.clear()
    with pytest.raises(DuplicateMembershipError):
        coordinator.transfer("u1", "A", "B")
    assert "remove_from_project" not in flaky.calls
    assert _members(store, "A") == ["u1"]


def test_add_failure_changes_nothing(store, coordinator, flaky):
    flaky.fail.add("add_to_project")
    with pytest.raises(TransportError):
        coordinator.transfer("u1", "A", "B")
    assert "remove_from_project" not in flaky.calls
    assert _members(store, "A") == ["u1"]
    assert _members(store, "B") == []


def test_remove_failure_leaves_member_on_both_then_retry_completes(store, coordinator, flaky):
    flaky.fail.add("remove_from_project")
    with pytest.raises(TransferPartialFailureError) as exc:
        coordinator.transfer("u1", "A", "B")

    partial = exc.value.transfer
    assert partial.is_partial
    assert partial.state is TransferState.FAILED
    assert isinstance(exc.value.cause, TransportError)
    assert _members(store, "A") == ["u1"]
    assert _members(store, "B") == ["u1"]
    assert len(store.overlay) == 0

    flaky.fail.clear()
    done = coordinator.retry_removal(partial)
    assert done.state is TransferState.DONE
    assert _members(store, "A") == []
    assert _members(store, "B") == ["u1"]


def test_retry_that_fails_again_stays_partial(store, coordinator, flaky):
    flaky.fail.add("remove_from_project")
    with pytest.raises(TransferPartialFailureError) as exc:
        coordinator.transfer("u1", "A", "B")
    with pytest.raises(TransferPartialFailureError) as again:
        coordinator.retry_removal(exc.value.transfer)
    assert again.value.transfer.is_partial


def test_retry_requires_partial_transfer(coordinator):
    done = coordinator.transfer("u1", "A", "B")
    with pytest.raises(InvalidTransferStateError):
        coordinator.retry_removal(done)


def test_illegal_state_transition_is_rejected():
    t = Transfer(user_id="u1", source_project_id="A", target_project_id="B")
    with pytest.raises(InvalidTransferStateError):
        t.advance(TransferState.REMOVING_FROM_SOURCE)


def test_name_falls_back_to_id_without_directory(store):
    t = TransferCoordinator(store).transfer("u1", "A", "C")
    assert t.target_project_name == "C"


def test_refetch_failures_after_accepted_writes_do_not_fail_the_move(store, coordinator, flaky, backend):
    flaky.fail_after["add_to_project"] = "list_members"
    t = coordinator.transfer("u1", "A", "B")
    assert t.state is TransferState.DONE
    assert [m.user_id for m in backend.list_members("A")] == []
    assert [m.user_id for m in backend.list_members("B")] == ["u1"]


def test_move_into_full_team_is_refused_before_any_write(store, backend, flaky):
    store.add("B", "u2", "designer")
    flaky.calls.clear()
    coordinator = TransferCoordinator(store, backend, {"max_members": 1})
    with pytest.raises(CapacityExceededError):
        coordinator.transfer("u1", "A", "B")
    assert "add_to_project" not in flaky.calls
    assert _members(store, "A") == ["u1"]
    assert _members(store, "B") == ["u2"]


def test_session_coordinator_uses_configured_team_size(backend):
    ctx = AllocationContext.start(Settings(max_team_size=2), backend=backend)
    ctx.store.add("A", "u1", "developer")
    ctx.store.add("B", "u2", "designer")
    ctx.store.add("B", "u3", "manager")
    with pytest.raises(CapacityExceededError):
        ctx.coordinator.transfer("u1", "A", "B")
    assert [m.user_id for m in backend.list_members("A")] == ["u1"]


def test_user_not_on_source_is_not_moved(store, coordinator, flaky):
    flaky.calls.clear()
    with pytest.raises(MembershipNotFoundError):
        coordinator.transfer("u2", "A", "B")
    assert "add_to_project" not in flaky.calls
    assert _members(store, "B") == []
