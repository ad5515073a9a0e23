# tests/test_api_client.py
import json
from datetime import date

import pytest
import requests

from api_client import TeamMemberApi, membership_from_payload
from errors import DuplicateMembershipError, MembershipError, MembershipNotFoundError, TransportError
from services.membership_store import MembershipStore


def _response(status, body=None, reason=""):
    r = requests.Response()
    r.status_code = status
    r.reason = reason
    r._content = b"" if body is None else json.dumps(body).encode()
    return r


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def request(self, method, url, headers=None, json=None, timeout=None):
        self.requests.append({"method": method, "url": url, "headers": headers, "json": json})
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


def _api(*responses, token=None):
    session = FakeSession(*responses)
    return TeamMemberApi("http://api.test/api/", token=token, session=session), session


def test_list_members_unwraps_data_envelope():
    api, session = _api(_response(200, {"data": [
        {"id": 7, "userId": "u1", "role": "developer", "allocationPercentage": 40},
        {"id": "u2", "role": "designer"},
    ]}))
    members = api.list_members("A")
    assert session.requests[0]["url"] == "http://api.test/api/project-team-members/project/A"
    assert [(m.user_id, m.id, m.allocation_percentage) for m in members] == [("u1", 7, 40), ("u2", None, 100)]
    assert all(m.project_id == "A" for m in members)


def test_list_users_accepts_bare_list_and_content_page():
    api, _ = _api(
        _response(200, [{"id": 1, "name": "Alice", "role": "DEVELOPER", "skills": "Java, SQL"}]),
        _response(200, {"content": [{"id": 2, "name": "Bob"}]}),
    )
    alice = api.list_users()[0]
    assert (alice.id, alice.role, alice.skills) == ("1", "developer", ["Java", "SQL"])
    assert [u.name for u in api.list_users()] == ["Bob"]


def test_project_dates_are_parsed():
    api, _ = _api(_response(200, {"data": {"id": "A", "name": "Alpha", "startDate": "2024-03-01T00:00:00Z"}}))
    p = api.get_project("A")
    assert p.start_date == date(2024, 3, 1)
    assert p.end_date is None


def test_missing_project_is_none():
    api, _ = _api(_response(404, {"message": "not found"}))
    assert api.get_project("nope") is None


def test_add_sends_camel_case_payload_and_token():
    api, session = _api(_response(201, {"success": True, "data": {"id": 9, "userId": "u1", "role": "developer"}}),
                        token="secret")
    created = api.add_to_project("A", "u1", "developer", allocation_percentage=50)
    sent = session.requests[0]
    assert sent["method"] == "POST"
    assert sent["json"] == {"projectId": "A", "userId": "u1", "role": "developer",
                            "isTeamLead": False, "allocationPercentage": 50}
    assert sent["headers"]["Authorization"] == "Bearer secret"
    assert (created.id, created.user_id) == (9, "u1")


@pytest.mark.parametrize("response", [
    _response(409, {"message": "Conflict"}),
    _response(400, {"message": "duplicate key value violates unique constraint"}),
    _response(200, {"success": False, "message": "User is already a member"}),
])
def test_add_duplicate_variants(response):
    api, _ = _api(response)
    with pytest.raises(DuplicateMembershipError):
        api.add_to_project("A", "u1", "developer")


def test_add_server_error_is_transport_error():
    api, _ = _api(_response(500, {"message": "boom"}))
    with pytest.raises(TransportError) as exc:
        api.add_to_project("A", "u1", "developer")
    assert exc.value.status_code == 500


def test_connection_failure_is_transport_error():
    api, _ = _api(requests.ConnectionError("refused"))
    with pytest.raises(TransportError):
        api.list_members("A")


def test_update_uses_put_with_camel_case_fields():
    api, session = _api(_response(200, {"data": {"id": 9, "userId": "u1", "role": "manager",
                                                 "allocationPercentage": 30}}))
    m = api.update_member(9, role="manager", allocation_percentage=30)
    assert session.requests[0]["method"] == "PUT"
    assert session.requests[0]["url"].endswith("/project-team-members/9")
    assert session.requests[0]["json"] == {"role": "manager", "allocationPercentage": 30}
    assert (m.role, m.allocation_percentage) == ("manager", 30)


def test_remove_missing_member_is_not_found_and_store_ignores_it():
    api, _ = _api(_response(404))
    with pytest.raises(MembershipNotFoundError):
        api.remove_from_project("A", "u1")

    api, session = _api(_response(404), _response(200, {"data": []}))
    MembershipStore(api).remove("A", "u1")
    assert [r["method"] for r in session.requests] == ["DELETE", "GET"]


def test_remove_server_error_propagates():
    api, _ = _api(_response(503, {"error": "unavailable"}))
    with pytest.raises(TransportError):
        api.remove_from_project("A", "u1")


def test_membership_payload_prefers_explicit_ids():
    m = membership_from_payload({"membershipId": 3, "userId": "u1", "isTeamLead": True}, "B")
    assert (m.id, m.user_id, m.project_id, m.is_team_lead) == (3, "u1", "B", True)


def test_roster_dto_reads_allocation_from_availability():
    # GET /project/{id} returns user-shaped DTOs: `id` is the user id
    api, _ = _api(_response(200, [
        {"id": "u1", "name": "Alice", "role": "developer", "isTeamLead": False, "availability": 40,
         "hourlyRate": 250.0, "experience": "mid", "skills": ["Java"]},
        {"id": "u2", "name": "Bob", "role": "designer", "isTeamLead": None, "availability": 0},
    ]))
    members = api.list_members("A")
    assert [(m.user_id, m.allocation_percentage, m.is_team_lead) for m in members] == [
        ("u1", 40, False), ("u2", 0, False)]
    assert [m.id for m in members] == [None, None]


def test_update_without_membership_id_is_refused_before_any_put():
    api, session = _api(_response(200, [{"id": "u1", "role": "developer", "availability": 40}]))
    with pytest.raises(MembershipError, match="has no id"):
        MembershipStore(api).update("A", "u1", role="manager")
    assert [r["method"] for r in session.requests] == ["GET"]

    with pytest.raises(ValueError):
        api.update_member(None, role="manager")
