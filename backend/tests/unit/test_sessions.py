"""Tests for SessionStore."""

from __future__ import annotations

import string
from datetime import timedelta

import pytest

from laundry.security.csrf import CSRFGuard
from laundry.security.sessions import SessionStore
from tests.factories import ManualClock

URLSAFE = frozenset(string.ascii_letters + string.digits + "-_")


@pytest.fixture
def csrf(clock: ManualClock) -> CSRFGuard:
    return CSRFGuard(clock=clock)


@pytest.fixture
def sessions(csrf: CSRFGuard, clock: ManualClock) -> SessionStore:
    return SessionStore(csrf, ttl=timedelta(hours=24), clock=clock)


class TestCreate:
    def test_anonymous_session(self, sessions: SessionStore, csrf: CSRFGuard) -> None:
        session = sessions.create()
        assert session.user_id is None
        assert session.authenticated is False
        assert csrf.validate(session.csrf_token)

    def test_authenticated_session(self, sessions: SessionStore) -> None:
        session = sessions.create(user_id="u1")
        assert session.authenticated is True
        assert sessions.get(session.id) is session

    def test_ids_are_opaque_and_unique(self, sessions: SessionStore) -> None:
        ids = {sessions.create(user_id="u1").id for _ in range(20)}
        assert len(ids) == 20
        # 32 random bytes, urlsafe base64 without padding.
        assert all(len(i) == 43 and set(i) <= URLSAFE for i in ids)


class TestGet:
    def test_unknown_and_empty(self, sessions: SessionStore) -> None:
        assert sessions.get("nope") is None
        assert sessions.get(None) is None
        assert sessions.get("") is None

    def test_expired_session_is_destroyed(
        self,
        sessions: SessionStore,
        csrf: CSRFGuard,
        clock: ManualClock,
    ) -> None:
        session = sessions.create(user_id="u1")
        clock.advance(hours=24, seconds=1)
        assert sessions.get(session.id) is None
        assert len(sessions) == 0
        assert session.csrf_token not in csrf


class TestDestroy:
    def test_destroy_revokes_token(self, sessions: SessionStore, csrf: CSRFGuard) -> None:
        session = sessions.create(user_id="u1")
        assert sessions.destroy(session.id) is True
        assert sessions.get(session.id) is None
        assert csrf.validate(session.csrf_token) is False

    def test_destroy_missing(self, sessions: SessionStore) -> None:
        assert sessions.destroy("nope") is False
        assert sessions.destroy(None) is False

    def test_destroy_for_user(self, sessions: SessionStore) -> None:
        sessions.create(user_id="u1")
        sessions.create(user_id="u1")
        keep = sessions.create(user_id="u2")
        assert sessions.destroy_for_user("u1") == 2
        assert len(sessions) == 1
        assert sessions.get(keep.id) is keep


class TestRefreshAndSweep:
    def test_refresh_csrf_rotates_token(self, sessions: SessionStore, csrf: CSRFGuard) -> None:
        session = sessions.create()
        old = session.csrf_token
        new = sessions.refresh_csrf(session)
        assert new != old
        assert session.csrf_token == new
        assert csrf.validate(old) is False
        assert csrf.validate(new) is True

    def test_sweep(self, sessions: SessionStore, clock: ManualClock) -> None:
        sessions.create()
        clock.advance(hours=12)
        fresh = sessions.create()
        clock.advance(hours=13)
        assert sessions.sweep() == 1
        assert sessions.get(fresh.id) is fresh
