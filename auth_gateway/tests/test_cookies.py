"""Tests for session cookie attributes and lifetimes."""
from fastapi import Response

from auth_gateway.cookies import clear_session_cookies, issue_session_cookies
from auth_gateway.tokens import TokenSet


def _tokens(expires_in=3600, refresh_token="rt"):
    return TokenSet.from_token_response(
        {"access_token": "at", "id_token": "it", "refresh_token": refresh_token, "expires_in": expires_in},
        now=0,
    )


def _set_cookies(response: Response) -> dict[str, str]:
    headers = [v.decode("latin-1") for k, v in response.raw_headers if k.lower() == b"set-cookie"]
    return {h.split("=", 1)[0]: h for h in headers}


def test_issue_sets_three_cookies_with_lifetimes():
    response = Response()
    issue_session_cookies(response, _tokens(expires_in=3600), is_https=True)
    cookies = _set_cookies(response)
    assert set(cookies) == {"access_token", "id_token", "refresh_token"}
    # 3600 s == 3,600,000 ms
    assert "Max-Age=3600" in cookies["access_token"]
    assert "Max-Age=3600" in cookies["id_token"]
    # 30 days == 2,592,000 s == 2,592,000,000 ms
    assert "Max-Age=2592000" in cookies["refresh_token"]


def test_refresh_cookie_lifetime_ignores_expires_in():
    response = Response()
    issue_session_cookies(response, _tokens(expires_in=60), is_https=False)
    cookies = _set_cookies(response)
    assert "Max-Age=60" in cookies["access_token"]
    assert "Max-Age=2592000" in cookies["refresh_token"]


def test_cookie_attributes_https():
    response = Response()
    issue_session_cookies(response, _tokens(), is_https=True)
    for header in _set_cookies(response).values():
        assert "HttpOnly" in header
        assert "SameSite=lax" in header
        assert "Path=/" in header
        assert "Secure" in header


def test_cookie_not_secure_over_http():
    response = Response()
    issue_session_cookies(response, _tokens(), is_https=False)
    for header in _set_cookies(response).values():
        assert "Secure" not in header


def test_no_refresh_cookie_without_refresh_token():
    response = Response()
    issue_session_cookies(response, _tokens(refresh_token=None), is_https=False)
    assert "refresh_token" not in _set_cookies(response)


def test_clear_uses_matching_attributes():
    response = Response()
    clear_session_cookies(response, is_https=True)
    cookies = _set_cookies(response)
    assert set(cookies) == {"access_token", "id_token", "refresh_token"}
    for header in cookies.values():
        assert "Max-Age=0" in header
        assert "Path=/" in header
        assert "SameSite=lax" in header
        assert "Secure" in header
        assert "HttpOnly" in header


def test_token_set_expiry_from_issuance():
    t = TokenSet.from_token_response({"access_token": "a", "id_token": "i", "expires_in": 120}, now=1000)
    assert t.expires_at == 1120
    assert t.token_type == "Bearer"
    default = TokenSet.from_token_response({"access_token": "a", "id_token": "i"}, now=0)
    assert default.expires_in == 3600
