"""
Tests for the per-request SessionContext: typed reads, staged writes and
the single store operation performed on commit.
"""

import pytest
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

from fastapi import Request, Response
from fastapi_sessions.backends.implementations import InMemoryBackend

from auth.session import (
    Anonymous,
    Bound,
    MalformedSessionValue,
    SessionConfig,
    SessionContext,
    SessionRecord,
    SessionStatus,
    StoreUnavailable,
    ValueStatus,
    build_session_cookie,
)

SECRET = "context-test-secret"


@pytest.fixture
def backend():
    return InMemoryBackend[UUID, SessionRecord]()


@pytest.fixture
def cookie():
    return build_session_cookie(SessionConfig(secret_key=SECRET, backend="memory"))


def signed_cookie_value(cookie, session_id: UUID) -> str:
    response = Response()
    cookie.attach_to_response(response, session_id)
    return response.headers["set-cookie"].split(";")[0].split("=", 1)[1]


def make_request(cookie_header: str | None = None) -> Request:
    headers = []
    if cookie_header is not None:
        headers.append((b"cookie", cookie_header.encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


async def bound_context(backend, cookie, entries: dict[str, str]) -> tuple[SessionContext, UUID]:
    session_id = uuid4()
    await backend.create(session_id, SessionRecord(entries=entries))
    request = make_request(f"session={signed_cookie_value(cookie, session_id)}")
    return await SessionContext.load(request, backend, cookie), session_id


class TestLoad:
    @pytest.mark.asyncio
    async def test_no_cookie_is_anonymous(self, backend, cookie):
        session = await SessionContext.load(make_request(), backend, cookie)

        assert session.ref == Anonymous()
        assert session.get("counter", int) is None
        assert session.get("user_id", str) is None

    @pytest.mark.asyncio
    async def test_valid_cookie_binds_stored_state(self, backend, cookie):
        session, session_id = await bound_context(backend, cookie, {"counter": "5", "user_id": '"alice"'})

        assert session.ref == Bound(session_id)
        assert session.get("counter", int) == 5
        assert session.get("user_id", str) == "alice"

    @pytest.mark.asyncio
    async def test_cookie_signed_with_another_key_is_anonymous(self, backend):
        other_cookie = build_session_cookie(SessionConfig(secret_key="someone-else", backend="memory"))
        own_cookie = build_session_cookie(SessionConfig(secret_key=SECRET, backend="memory"))
        session_id = uuid4()
        await backend.create(session_id, SessionRecord(entries={"counter": "9"}))

        request = make_request(f"session={signed_cookie_value(other_cookie, session_id)}")
        session = await SessionContext.load(request, backend, own_cookie)

        assert session.ref == Anonymous()
        assert session.get("counter", int) is None

    @pytest.mark.asyncio
    async def test_valid_cookie_without_stored_state_is_anonymous(self, backend, cookie):
        request = make_request(f"session={signed_cookie_value(cookie, uuid4())}")

        session = await SessionContext.load(request, backend, cookie)

        assert session.ref == Anonymous()


class TestTypedAccess:
    @pytest.mark.asyncio
    async def test_lookup_distinguishes_absent_valid_and_malformed(self, backend, cookie):
        session, _ = await bound_context(backend, cookie, {"counter": '"seven"', "user_id": '"bob"'})

        assert session.lookup("missing", int).status is ValueStatus.ABSENT
        assert session.lookup("user_id", str).status is ValueStatus.VALID
        assert session.lookup("user_id", str).value == "bob"
        assert session.lookup("counter", int).status is ValueStatus.MALFORMED

    @pytest.mark.asyncio
    async def test_get_raises_on_malformed_value(self, backend, cookie):
        session, _ = await bound_context(backend, cookie, {"counter": "not json"})

        with pytest.raises(MalformedSessionValue) as exc_info:
            session.get("counter", int)

        assert exc_info.value.key == "counter"
        assert exc_info.value.expected == "int"

    @pytest.mark.asyncio
    async def test_get_does_not_coerce_between_types(self, backend, cookie):
        session, _ = await bound_context(backend, cookie, {"counter": '"3"', "user_id": "42"})

        with pytest.raises(MalformedSessionValue):
            session.get("counter", int)
        with pytest.raises(MalformedSessionValue):
            session.get("user_id", str)

    @pytest.mark.asyncio
    async def test_insert_is_visible_to_get_and_last_write_wins(self, backend, cookie):
        session = await SessionContext.load(make_request(), backend, cookie)

        session.insert("counter", 1)
        session.insert("counter", 2)

        assert session.get("counter", int) == 2
        assert session.status is SessionStatus.CHANGED

    @pytest.mark.asyncio
    async def test_insert_rejects_values_that_are_not_json(self, backend, cookie):
        session = await SessionContext.load(make_request(), backend, cookie)

        with pytest.raises(TypeError):
            session.insert("counter", object())
        assert session.status is SessionStatus.UNCHANGED

    @pytest.mark.asyncio
    async def test_remove(self, backend, cookie):
        session, session_id = await bound_context(backend, cookie, {"counter": "1", "user_id": '"alice"'})

        session.remove("counter")
        session.remove("never-set")
        await session.commit(Response())

        assert (await backend.read(session_id)).entries == {"user_id": '"alice"'}


class TestCommit:
    @pytest.mark.asyncio
    async def test_unchanged_session_touches_nothing(self, backend, cookie):
        session, session_id = await bound_context(backend, cookie, {"counter": "1"})
        response = Response()

        session.get("counter", int)
        await session.commit(response)

        assert "set-cookie" not in response.headers
        assert list(backend.data) == [session_id]

    @pytest.mark.asyncio
    async def test_first_write_creates_session_and_sets_cookie(self, backend, cookie):
        session = await SessionContext.load(make_request(), backend, cookie)
        response = Response()

        session.insert("counter", 1)
        await session.commit(response)

        assert isinstance(session.ref, Bound)
        assert backend.data[session.ref.session_id].entries == {"counter": "1"}
        assert response.headers["set-cookie"].startswith("session=")

    @pytest.mark.asyncio
    async def test_write_to_bound_session_updates_in_place(self, backend, cookie):
        session, session_id = await bound_context(backend, cookie, {"counter": "1"})
        response = Response()

        session.insert("counter", 2)
        await session.commit(response)

        assert session.ref == Bound(session_id)
        assert list(backend.data) == [session_id]
        assert backend.data[session_id].entries == {"counter": "2"}
        # Same id, freshly signed so the cookie age restarts with the store TTL
        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("session=")
        refreshed = make_request(set_cookie.split(";")[0])
        reloaded = await SessionContext.load(refreshed, backend, cookie)
        assert reloaded.ref == Bound(session_id)

    @pytest.mark.asyncio
    async def test_renew_moves_state_to_new_id(self, backend, cookie):
        session, old_id = await bound_context(backend, cookie, {"counter": "3"})
        response = Response()

        session.insert("user_id", "alice")
        session.renew()
        await session.commit(response)

        assert isinstance(session.ref, Bound)
        new_id = session.ref.session_id
        assert new_id != old_id
        assert old_id not in backend.data
        assert backend.data[new_id].entries == {"counter": "3", "user_id": '"alice"'}
        assert signed_cookie_value(cookie, new_id).split(".")[0] in response.headers["set-cookie"]

    @pytest.mark.asyncio
    async def test_insert_after_renew_keeps_renewal(self, backend, cookie):
        session = await SessionContext.load(make_request(), backend, cookie)

        session.renew()
        session.insert("user_id", "alice")

        assert session.status is SessionStatus.RENEWED

    @pytest.mark.asyncio
    async def test_purge_wins_over_writes(self, backend, cookie):
        session, session_id = await bound_context(backend, cookie, {"user_id": '"alice"'})
        response = Response()

        session.purge()
        session.insert("counter", 10)
        await session.commit(response)

        assert session.status is SessionStatus.PURGED
        assert session_id not in backend.data
        assert backend.data == {}
        set_cookie = response.headers["set-cookie"].lower()
        assert set_cookie.startswith("session=")
        assert "max-age=0" in set_cookie

    @pytest.mark.asyncio
    async def test_commit_runs_once(self, backend, cookie):
        session = await SessionContext.load(make_request(), backend, cookie)

        session.insert("counter", 1)
        await session.commit(Response())
        await session.commit(Response())

        assert len(backend.data) == 1

    @pytest.mark.asyncio
    async def test_failed_renewal_does_not_create_new_record(self, cookie):
        old_id = uuid4()
        failing_backend = AsyncMock()
        failing_backend.delete.side_effect = StoreUnavailable("Session store error during session deletion")
        session = SessionContext(Bound(old_id), SessionRecord(entries={"counter": "3"}), failing_backend, cookie)
        response = Response()

        session.insert("user_id", "alice")
        session.renew()
        with pytest.raises(StoreUnavailable):
            await session.commit(response)

        failing_backend.delete.assert_awaited_once_with(old_id)
        failing_backend.create.assert_not_awaited()
        assert "set-cookie" not in response.headers
