"""Tests for the client-side session reconciler."""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from genmode.client.cache import (
    SESSION_DATA_KEY,
    SESSION_KEYS,
    SESSION_TIMESTAMP_KEY,
    USER_DATA_KEY,
    DurableCache,
)
from genmode.client.identity import (
    AuthEvent,
    AuthEventKind,
    AuthSubscription,
    HttpIdentityProvider,
    RemoteSession,
    RemoteUser,
)
from genmode.client.session import (
    IdentityError,
    SessionIdentity,
    SessionReconciler,
    SessionState,
    display_name_for,
)
from genmode.results import Err, ErrorKind, Ok


def make_session(user_id="u1", email="kai@example.com", token="tok"):
    return RemoteSession(access_token=token, user=RemoteUser(id=user_id, email=email))


class FakeProvider:
    """Identity provider double with a real event channel."""

    def __init__(self, session=None, profile_name="Kai from profile"):
        self.get_session = AsyncMock(return_value=Ok(session))
        self.fetch_profile = AsyncMock(return_value=Ok({"id": "u1", "name": profile_name}))
        self.insert_profile = AsyncMock(return_value=Ok({}))
        self.sign_in = AsyncMock(return_value=Ok(make_session()))
        self.sign_up = AsyncMock(return_value=Ok(make_session()))
        self.sign_out = AsyncMock(return_value=Ok(None))
        self.subscriptions = []
        self.subscribe_calls = 0

    def subscribe(self):
        self.subscribe_calls += 1
        subscription = AuthSubscription(self)
        self.subscriptions.append(subscription)
        return subscription

    def _detach(self, subscription):
        self.subscriptions.remove(subscription)

    def emit(self, kind, session=None):
        for subscription in list(self.subscriptions):
            subscription._deliver(AuthEvent(kind=kind, session=session))


async def settle():
    for _ in range(20):
        await asyncio.sleep(0)


@pytest.fixture
def cache(tmp_path):
    return DurableCache(tmp_path / "session.json")


def seed_identity(cache, user_id="u1", name="Cached Kai"):
    cache.set_many({
        USER_DATA_KEY: {"id": user_id, "email": "kai@example.com", "name": name},
        SESSION_TIMESTAMP_KEY: "2026-10-01T00:00:00+00:00",
        SESSION_DATA_KEY: make_session(user_id).to_dict(),
    })


class TestInitialization:
    def test_prefill_from_cache_before_start(self, cache):
        seed_identity(cache)
        reconciler = SessionReconciler(FakeProvider(), cache)
        assert reconciler.state == SessionState.UNINITIALIZED
        assert reconciler.identity == SessionIdentity("u1", "kai@example.com", "Cached Kai")
        assert reconciler.is_loading
        assert not reconciler.is_initialized

    async def test_cached_identity_reused_without_profile_fetch(self, cache):
        seed_identity(cache)
        provider = FakeProvider(session=make_session("u1", token="fresh"))
        async with SessionReconciler(provider, cache) as reconciler:
            assert reconciler.state == SessionState.AUTHENTICATED
            assert reconciler.identity.display_name == "Cached Kai"
            provider.fetch_profile.assert_not_awaited()
            assert cache.get(SESSION_DATA_KEY)["access_token"] == "fresh"
            assert cache.get(SESSION_TIMESTAMP_KEY) != "2026-10-01T00:00:00+00:00"
            assert reconciler.is_initialized
            assert not reconciler.is_loading

    async def test_no_session_clears_cache(self, cache):
        seed_identity(cache)
        async with SessionReconciler(FakeProvider(session=None), cache) as reconciler:
            assert reconciler.state == SessionState.ANONYMOUS
            assert reconciler.identity is None
            for key in SESSION_KEYS:
                assert cache.get(key) is None

    async def test_session_check_error_settles_anonymous(self, cache):
        seed_identity(cache)
        provider = FakeProvider()
        provider.get_session.return_value = Err(ErrorKind.TRANSIENT, "down")
        async with SessionReconciler(provider, cache) as reconciler:
            assert reconciler.state == SessionState.ANONYMOUS
            assert cache.keys() == []
            assert reconciler.is_initialized

    async def test_other_cached_user_triggers_profile_fetch(self, cache):
        seed_identity(cache, user_id="someone-else")
        provider = FakeProvider(session=make_session("u1"))
        async with SessionReconciler(provider, cache) as reconciler:
            provider.fetch_profile.assert_awaited_once_with("u1")
            assert reconciler.identity == SessionIdentity("u1", "kai@example.com", "Kai from profile")
            assert cache.get(USER_DATA_KEY) == {"id": "u1", "email": "kai@example.com", "name": "Kai from profile"}

    async def test_profile_fetch_failure_settles_anonymous(self, cache):
        provider = FakeProvider(session=make_session("u1"))
        provider.fetch_profile.return_value = Err(ErrorKind.NOT_FOUND, "profile not found")
        async with SessionReconciler(provider, cache) as reconciler:
            assert reconciler.state == SessionState.ANONYMOUS
            assert reconciler.identity is None
            assert cache.keys() == []


class TestDisplayName:
    def test_profile_name_wins(self):
        assert display_name_for(RemoteUser(id="1", email="a@b.co"), "Ari") == "Ari"

    def test_email_local_part(self):
        assert display_name_for(RemoteUser(id="1", email="ari.k@b.co"), None) == "ari.k"

    def test_default_name(self):
        assert display_name_for(RemoteUser(id="1", email=""), "") == "User"


class TestPushedEvents:
    async def test_signed_out_event_clears_identity(self, cache):
        provider = FakeProvider(session=make_session())
        async with SessionReconciler(provider, cache) as reconciler:
            assert reconciler.state == SessionState.AUTHENTICATED
            provider.emit(AuthEventKind.SIGNED_OUT)
            await settle()
            assert reconciler.state == SessionState.ANONYMOUS
            assert reconciler.identity is None
            assert cache.keys() == []

    async def test_refresh_event_rewrites_cache(self, cache):
        provider = FakeProvider(session=make_session())
        async with SessionReconciler(provider, cache) as reconciler:
            provider.emit(AuthEventKind.TOKEN_REFRESHED, make_session(token="rotated"))
            await settle()
            assert reconciler.state == SessionState.AUTHENTICATED
            assert cache.get(SESSION_DATA_KEY)["access_token"] == "rotated"
            # Second resolution hits the cached identity
            assert provider.fetch_profile.await_count == 1

    async def test_event_without_session_is_ignored(self, cache):
        provider = FakeProvider(session=make_session())
        async with SessionReconciler(provider, cache) as reconciler:
            await reconciler.handle_event(AuthEvent(kind=AuthEventKind.USER_UPDATED))
            assert reconciler.state == SessionState.AUTHENTICATED

    async def test_aclose_unsubscribes_once(self, cache):
        provider = FakeProvider()
        reconciler = SessionReconciler(provider, cache)
        await reconciler.start()
        await reconciler.start()
        assert provider.subscribe_calls == 1
        await reconciler.aclose()
        await reconciler.aclose()
        assert provider.subscriptions == []


class TestSignInOut:
    async def test_sign_in_success(self, cache):
        provider = FakeProvider()
        async with SessionReconciler(provider, cache) as reconciler:
            identity = await reconciler.sign_in("kai@example.com", "pw")
            assert identity.display_name == "Kai from profile"
            assert reconciler.state == SessionState.AUTHENTICATED
            assert cache.get(USER_DATA_KEY)["id"] == "u1"

    async def test_sign_in_failure_raises(self, cache):
        seed_identity(cache)
        provider = FakeProvider(session=make_session())
        provider.sign_in.return_value = Err(ErrorKind.PRECONDITION, "Invalid login credentials")
        async with SessionReconciler(provider, cache) as reconciler:
            with pytest.raises(IdentityError, match="Invalid login credentials"):
                await reconciler.sign_in("kai@example.com", "nope")
            assert reconciler.state == SessionState.ANONYMOUS
            assert cache.keys() == []
            assert not reconciler.is_loading

    async def test_sign_up_creates_missing_profile(self, cache):
        provider = FakeProvider()
        provider.fetch_profile.side_effect = [
            Err(ErrorKind.NOT_FOUND, "profile not found"),
            Ok({"id": "u1", "name": "Kai"}),
        ]
        async with SessionReconciler(provider, cache) as reconciler:
            identity = await reconciler.sign_up("kai@example.com", "pw", "Kai")
            provider.insert_profile.assert_awaited_once_with("u1", "Kai")
            assert identity.display_name == "Kai"

    async def test_sign_up_failure_raises(self, cache):
        provider = FakeProvider()
        provider.sign_up.return_value = Err(ErrorKind.PRECONDITION, "User already registered")
        async with SessionReconciler(provider, cache) as reconciler:
            with pytest.raises(IdentityError):
                await reconciler.sign_up("kai@example.com", "pw", "Kai")
            assert reconciler.state == SessionState.ANONYMOUS

    async def test_sign_out(self, cache):
        provider = FakeProvider(session=make_session())
        async with SessionReconciler(provider, cache) as reconciler:
            await reconciler.sign_out()
            assert reconciler.identity is None
            assert cache.keys() == []

    async def test_sign_out_failure_raises(self, cache):
        provider = FakeProvider(session=make_session())
        provider.sign_out.return_value = Err(ErrorKind.TRANSIENT, "Identity provider is unreachable")
        async with SessionReconciler(provider, cache) as reconciler:
            with pytest.raises(IdentityError):
                await reconciler.sign_out()
            assert reconciler.state == SessionState.AUTHENTICATED


class TestAgainstServer:
    async def test_sign_up_round_trip(self, cache, asgi_transport):
        provider = HttpIdentityProvider("http://test", transport=asgi_transport)
        async with SessionReconciler(provider, cache) as reconciler:
            assert reconciler.state == SessionState.ANONYMOUS
            identity = await reconciler.sign_up("mo@example.com", "hunter22", "Mo")
            assert identity.display_name == "Mo"
        await provider.aclose()

        # A fresh process picks the session back up from the cache
        resumed = HttpIdentityProvider("http://test", session=RemoteSession.from_dict(cache.get(SESSION_DATA_KEY)), transport=asgi_transport)
        async with SessionReconciler(resumed, cache) as reconciler:
            assert reconciler.state == SessionState.AUTHENTICATED
            assert reconciler.identity.display_name == "Mo"
            await reconciler.sign_out()
            assert reconciler.state == SessionState.ANONYMOUS
        await resumed.aclose()
        assert cache.keys() == []

    async def test_sign_in_wrong_password(self, cache, asgi_transport, client):
        client.post("/auth/signup", json={"email": "mo@example.com", "password": "hunter22", "name": "Mo"})
        provider = HttpIdentityProvider("http://test", transport=asgi_transport)
        async with SessionReconciler(provider, cache) as reconciler:
            with pytest.raises(IdentityError, match="Invalid login credentials"):
                await reconciler.sign_in("mo@example.com", "wrong-one")
            identity = await reconciler.sign_in("mo@example.com", "hunter22")
            assert identity.display_name == "Mo"
        await provider.aclose()

    async def test_stale_cached_token_settles_anonymous(self, cache, asgi_transport):
        seed_identity(cache)
        provider = HttpIdentityProvider("http://test", session=make_session(token="bogus"), transport=asgi_transport)
        async with SessionReconciler(provider, cache) as reconciler:
            assert reconciler.state == SessionState.ANONYMOUS
            assert cache.keys() == []
        await provider.aclose()


def routed(routes):
    """MockTransport answering each path with a fixed (status, body) pair."""

    def handler(request):
        status, body = routes[request.url.path]
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    return httpx.MockTransport(handler)


class TestMalformedProviderBodies:
    async def test_html_profile_settles_anonymous(self, cache):
        seed_identity(cache, user_id="someone-else")
        transport = routed({
            "/auth/session": (200, make_session().to_dict()),
            "/profiles/u1": (200, "<html>gateway</html>"),
        })
        provider = HttpIdentityProvider("http://test", session=make_session(), transport=transport)
        async with SessionReconciler(provider, cache) as reconciler:
            assert reconciler.state == SessionState.ANONYMOUS
            assert reconciler.is_initialized
            assert cache.keys() == []
        await provider.aclose()

    async def test_html_sign_in_raises_identity_error(self, cache):
        transport = routed({"/auth/token": (200, "<html>gateway</html>")})
        provider = HttpIdentityProvider("http://test", transport=transport)
        async with SessionReconciler(provider, cache) as reconciler:
            with pytest.raises(IdentityError, match="Malformed session payload"):
                await reconciler.sign_in("kai@example.com", "pw")
            assert reconciler.state == SessionState.ANONYMOUS
        await provider.aclose()

    async def test_non_object_profile_is_err(self):
        provider = HttpIdentityProvider("http://test", transport=routed({"/profiles/u1": (200, ["not", "a", "profile"])}))
        result = await provider.fetch_profile("u1")
        assert result == Err(ErrorKind.TRANSIENT, "Malformed profile payload")
        await provider.aclose()


class TestResolutionFailures:
    async def test_sign_in_profile_failure_raises_and_clears_cache(self, cache):
        seed_identity(cache, user_id="someone-else")
        provider = FakeProvider(session=None)
        provider.fetch_profile.return_value = Err(ErrorKind.TRANSIENT, "down")
        async with SessionReconciler(provider, cache) as reconciler:
            with pytest.raises(IdentityError, match="profile could not be loaded"):
                await reconciler.sign_in("kai@example.com", "pw")
            assert reconciler.state == SessionState.ANONYMOUS
            assert reconciler.identity is None
            assert cache.keys() == []

    async def test_sign_up_profile_failure_raises_and_clears_cache(self, cache):
        provider = FakeProvider(session=None)
        provider.fetch_profile.return_value = Err(ErrorKind.NOT_FOUND, "profile not found")
        async with SessionReconciler(provider, cache) as reconciler:
            with pytest.raises(IdentityError, match="profile could not be loaded"):
                await reconciler.sign_up("kai@example.com", "pw", "Kai")
            assert reconciler.state == SessionState.ANONYMOUS
            assert cache.keys() == []

    async def test_failing_event_does_not_stop_later_events(self, cache):
        provider = FakeProvider(session=make_session())
        async with SessionReconciler(provider, cache) as reconciler:
            assert reconciler.state == SessionState.AUTHENTICATED
            provider.fetch_profile.side_effect = RuntimeError("boom")
            provider.emit(AuthEventKind.TOKEN_REFRESHED, make_session(user_id="u2"))
            await settle()
            provider.emit(AuthEventKind.SIGNED_OUT)
            await settle()
            assert reconciler.state == SessionState.ANONYMOUS
            assert cache.keys() == []

    async def test_last_resolution_to_finish_wins(self, cache):
        gate = asyncio.Event()

        async def slow_profile(user_id):
            await gate.wait()
            return Ok({"id": user_id, "name": "Slow Kai"})

        provider = FakeProvider(session=None)
        provider.fetch_profile.side_effect = slow_profile
        async with SessionReconciler(provider, cache) as reconciler:
            pending = asyncio.create_task(reconciler.sign_in("kai@example.com", "pw"))
            await settle()
            provider.emit(AuthEventKind.SIGNED_OUT)
            await settle()
            assert reconciler.state == SessionState.ANONYMOUS

            gate.set()
            identity = await pending
            assert identity.display_name == "Slow Kai"
            assert reconciler.state == SessionState.AUTHENTICATED
            assert cache.get(USER_DATA_KEY)["name"] == "Slow Kai"
