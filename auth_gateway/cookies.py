"""
Session cookies carrying the token set. HttpOnly, SameSite=lax, Path=/; Secure only over HTTPS.
Clearing must repeat the same attributes or browsers keep the cookie.
"""
from fastapi import Response

from auth_gateway.config import REFRESH_COOKIE_MAX_AGE
from auth_gateway.tokens import TokenSet

ACCESS_COOKIE = "access_token"
ID_COOKIE = "id_token"
REFRESH_COOKIE = "refresh_token"
SESSION_COOKIES = (ACCESS_COOKIE, ID_COOKIE, REFRESH_COOKIE)


def _attrs(secure: bool) -> dict:
    return {"httponly": True, "samesite": "lax", "secure": secure, "path": "/"}


def issue_session_cookies(response: Response, tokens: TokenSet, is_https: bool) -> None:
    """
    access/id cookies live as long as the access token (expires_in seconds);
    the refresh cookie is always 30 days. No refresh cookie without a refresh token.
    """
    attrs = _attrs(is_https)
    response.set_cookie(ACCESS_COOKIE, tokens.access_token, max_age=tokens.expires_in, **attrs)
    response.set_cookie(ID_COOKIE, tokens.id_token, max_age=tokens.expires_in, **attrs)
    if tokens.refresh_token:
        response.set_cookie(REFRESH_COOKIE, tokens.refresh_token, max_age=REFRESH_COOKIE_MAX_AGE, **attrs)


def clear_session_cookies(response: Response, is_https: bool) -> None:
    attrs = _attrs(is_https)
    for name in SESSION_COOKIES:
        response.delete_cookie(name, **attrs)
