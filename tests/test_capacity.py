# tests/test_capacity.py
import pytest

from errors import CapacityExceededError
from models.team_membership import TeamMembership
from utils.capacity import ensure_can_add, ensure_role_change, is_manager_role, validate


def _roster(n, role="developer", **extra):
    return [TeamMembership(project_id="P", user_id=f"u{i}", role=role, **extra) for i in range(n)]


def test_full_team_cannot_add():
    report = validate(_roster(9))
    assert report.can_add is False
    assert report.is_at_capacity is True
    assert report.team_size == 9


def test_eight_members_is_near_capacity_but_open():
    report = validate(_roster(8))
    assert report.is_near_capacity is True
    assert report.can_add is True
    assert report.is_at_capacity is False


def test_small_team_is_not_near_capacity():
    report = validate(_roster(6))
    assert report.is_near_capacity is False
    assert report.can_add is True


def test_inactive_members_do_not_count():
    roster = _roster(8) + [TeamMembership(project_id="P", user_id="gone", role="developer", is_active=False)]
    assert validate(roster).team_size == 8


def test_manager_ceiling_unset_always_allows_managers():
    roster = _roster(3, role="manager")
    report = validate(roster, "manager")
    assert report.can_add_manager is True
    assert report.can_add is True
    assert report.max_managers is None
    assert report.manager_count == 3
    assert report.has_manager


def test_manager_ceiling_blocks_second_manager():
    roster = _roster(2) + [TeamMembership(project_id="P", user_id="m", role="Manager")]
    report = validate(roster, "manager", max_managers=1)
    assert report.can_add_manager is False
    assert report.can_add is False
    # a developer still fits
    assert validate(roster, "developer", max_managers=1).can_add is True


def test_ensure_can_add_raises_when_full():
    with pytest.raises(CapacityExceededError) as exc:
        ensure_can_add(_roster(9), "developer")
    assert exc.value.report.team_size == 9
    assert "9/9" in str(exc.value)


def test_ensure_can_add_respects_configured_ceiling():
    ensure_can_add(_roster(4), "developer", max_members=5)
    with pytest.raises(CapacityExceededError):
        ensure_can_add(_roster(5), "developer", max_members=5)


def test_ensure_can_add_raises_for_manager_over_ceiling():
    with pytest.raises(CapacityExceededError):
        ensure_can_add(_roster(1, role="manager"), "manager", max_managers=1)


def test_role_change_to_manager_checks_other_managers():
    roster = _roster(2) + [TeamMembership(project_id="P", user_id="m", role="manager")]
    with pytest.raises(CapacityExceededError):
        ensure_role_change(roster, "u0", "manager", max_managers=1)
    # the current manager keeping the role is fine
    report = ensure_role_change(roster, "m", "manager", max_managers=1)
    assert report.team_size == 3


def test_is_manager_role():
    assert is_manager_role("Manager")
    assert is_manager_role(" pm ")
    assert not is_manager_role("developer")
    assert not is_manager_role(None)
