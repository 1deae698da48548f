"""Tests for the client session facade: initialise, headers, sign-out."""
import asyncio

import httpx
import pytest

from auth_gateway.errors import ConfigurationError
from client_app import session as session_mod
from client_app.session import AuthSession
from client_app.tests.helpers import FakeClock, make_id_token
from client_app.token_store import EncryptedTokenStore


def _store(tmp_path):
    return EncryptedTokenStore(tmp_path / "tokens.json", secret="session-test-secret")


def test_initialize_restores_previous_session(tmp_path):
    clock = FakeClock()
    first = AuthSession(_store(tmp_path), gateway_url="http://gw", clock=clock)
    first.store_tokens({"access_token": "at", "id_token": make_id_token(email="a@corp.com"), "expires_in": 3600})

    second = AuthSession(_store(tmp_path), gateway_url="http://gw", clock=clock)
    assert second.tokens is None
    second.initialize()
    assert second.is_authenticated()
    assert second.user.email == "a@corp.com"


def test_initialize_with_unreadable_store_is_signed_out(tmp_path):
    path = tmp_path / "tokens.json"
    path.write_text("garbage")
    session = AuthSession(EncryptedTokenStore(path, secret="s"), gateway_url="http://gw")
    assert session.initialize() is None
    assert session.is_authenticated() is False


def test_auth_headers(tmp_path):
    session = AuthSession(_store(tmp_path), gateway_url="http://gw")
    assert session.auth_headers() == {}
    session.store_tokens({"access_token": "at", "token_type": "Bearer", "expires_in": 60})
    assert session.auth_headers() == {"Authorization": "Bearer at"}


def test_login_url(tmp_path):
    assert AuthSession(_store(tmp_path), gateway_url="http://gw/").login_url() == "http://gw/auth/login"


def test_sign_out_calls_gateway_and_clears(tmp_path):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, request.content))
        return httpx.Response(200, json={"success": True, "message": "Logged out successfully"})

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    session = AuthSession(_store(tmp_path), gateway_url="http://gw", http_client=http)
    session.store_tokens({"access_token": "at", "expires_in": 60})
    asyncio.run(session.sign_out())
    assert seen == [("POST", "/auth/logout", b"")]
    assert session.tokens is None
    assert session.initialize() is None


def test_sign_out_clears_even_if_gateway_unreachable(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    session = AuthSession(_store(tmp_path), gateway_url="http://gw", http_client=http)
    session.store_tokens({"access_token": "at", "expires_in": 60})
    asyncio.run(session.sign_out())
    assert session.tokens is None


def test_refresh_without_refresh_token_clears(tmp_path):
    session = AuthSession(_store(tmp_path), gateway_url="http://gw")
    session.store_tokens({"access_token": "at", "expires_in": 60})
    assert asyncio.run(session.refresh()) is False
    assert session.tokens is None


def test_create_session_requires_secret(monkeypatch, tmp_path):
    monkeypatch.setattr(session_mod, "TOKEN_STORE_PATH", tmp_path / "tokens.json")
    monkeypatch.setattr(session_mod, "TOKEN_STORE_SECRET", "")
    with pytest.raises(ConfigurationError):
        session_mod.create_session()

    monkeypatch.setattr(session_mod, "TOKEN_STORE_SECRET", "configured-secret")
    s = session_mod.create_session()
    assert s.tokens is None


def test_complete_sign_in_rejects_handoff_without_id_token(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        assert (request.method, request.url.path) == ("GET", "/auth/token")
        return httpx.Response(200, json={"access_token": "at", "expires_in": 3600})

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    session = AuthSession(_store(tmp_path), gateway_url="http://gw", http_client=http)
    assert asyncio.run(session.complete_sign_in()) is False
    assert session.tokens is None
    assert session.initialize() is None
