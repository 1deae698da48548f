"""Sign-in through the gateway ending in the client's encrypted token store."""
import asyncio
import time
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from auth_gateway.flow_store import InMemoryFlowStore, set_flow_store
from auth_gateway.main import app
from auth_gateway.tests.helpers import MockTokenResponse, make_id_token
from client_app.route_guard import ALLOW, HOME_PATH, SIGN_IN_PATH, GuardDecision, RouteGuard
from client_app.session import AuthSession
from client_app.token_store import EncryptedTokenStore


@pytest.fixture(autouse=True)
def fresh_flow_store():
    set_flow_store(InMemoryFlowStore())
    yield


def _token_body():
    return {
        "access_token": "at-123",
        "id_token": make_id_token(sub="sub-1", email="alice@corp.com", exp=int(time.time()) + 3600),
        "refresh_token": "rt-123",
        "token_type": "Bearer",
        "expires_in": 3600,
    }


def test_login_callback_then_client_stores_tokens_and_guard_allows_home(tmp_path):
    store = EncryptedTokenStore(tmp_path / "tokens.json", secret="handoff-secret")

    async def run():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            session = AuthSession(store, gateway_url="http://testserver", http_client=http)
            guard = RouteGuard(session)
            assert guard.before_navigate("/") == GuardDecision(False, SIGN_IN_PATH)

            r = await http.get(session.login_url())
            assert r.status_code == 302
            state = parse_qs(urlparse(r.headers["location"]).query)["state"][0]

            with patch("auth_gateway.provider.httpx.post", return_value=MockTokenResponse(_token_body())):
                r = await http.get("/auth/callback", params={"code": "auth-code", "state": state})
            assert r.headers["location"] == "/?auth=success"

            assert await session.complete_sign_in() is True
            return session, guard

    session, guard = asyncio.run(run())
    assert session.tokens.access_token == "at-123"
    assert session.tokens.refresh_token == "rt-123"
    assert session.user.email == "alice@corp.com"
    assert guard.before_navigate("/") == ALLOW
    assert guard.before_navigate("/signin") == GuardDecision(False, HOME_PATH)
    # Persisted, so a restarted client is still signed in
    assert store.load().access_token == "at-123"


def test_complete_sign_in_without_gateway_session_stays_signed_out(tmp_path):
    store = EncryptedTokenStore(tmp_path / "tokens.json", secret="handoff-secret")

    async def run():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            session = AuthSession(store, gateway_url="http://testserver", http_client=http)
            return session, await session.complete_sign_in()

    session, ok = asyncio.run(run())
    assert ok is False
    assert session.tokens is None
    assert store.load() is None
