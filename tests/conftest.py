# tests/conftest.py
import pytest

from db import SqlTeamBackend
from errors import TransportError


class FlakyBackend:
    """Wraps a backend; methods named in `fail` raise TransportError instead of running.

    `fail_after` maps a method name to another one that starts failing once the
    first has succeeded, e.g. {"add_to_project": "list_members"}.
    """

    def __init__(self, inner):
        self.inner = inner
        self.fail = set()
        self.fail_after = {}
        self.calls = []

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if not callable(attr):
            return attr

        def wrapper(*args, **kwargs):
            self.calls.append(name)
            if name in self.fail:
                raise TransportError(f"simulated {name} failure")
            result = attr(*args, **kwargs)
            if name in self.fail_after:
                self.fail.add(self.fail_after[name])
            return result
        return wrapper


@pytest.fixture
def backend():
    b = SqlTeamBackend.from_url("sqlite://")
    b.upsert_user("u1", "Alice", "alice@example.com", role="developer", department="VNIT", domain="Java")
    b.upsert_user("u2", "Bob", "bob@example.com", role="designer", department="Hospy", domain="Angular")
    b.upsert_user("u3", "Carol", "carol@example.com", role="manager", department="VNIT", domain="Java")
    b.create_project("A", "Alpha", manager_id="u3")
    b.create_project("B", "Beta")
    b.create_project("C", "Gamma")
    return b


@pytest.fixture
def flaky(backend):
    return FlakyBackend(backend)
