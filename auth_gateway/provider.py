"""
Identity provider token endpoint (POST /oauth2/token): authorization_code exchange
and refresh_token grant. Every failure surfaces as UpstreamError.
"""
import logging

import httpx

from auth_gateway.config import CLIENT_ID, HTTP_TIMEOUT, PROVIDER_URL
from auth_gateway.errors import UpstreamError
from auth_gateway.tokens import TokenSet

logger = logging.getLogger(__name__)


def token_endpoint() -> str:
    return f"{PROVIDER_URL}/oauth2/token"


def _post_token(data: dict) -> dict:
    try:
        r = httpx.post(
            token_endpoint(),
            data=data,
            headers={"Accept": "application/json"},
            timeout=HTTP_TIMEOUT,
        )
    except httpx.HTTPError as e:
        logger.warning("Token endpoint request failed (%s): %s", data.get("grant_type"), type(e).__name__)
        raise UpstreamError("Token endpoint unreachable") from e

    if not 200 <= r.status_code < 300:
        err = {}
        if r.headers.get("content-type", "").startswith("application/json"):
            try:
                err = r.json()
            except ValueError:
                err = {}
        logger.warning(
            "Token endpoint returned %s for %s: %s",
            r.status_code,
            data.get("grant_type"),
            err.get("error", "unknown_error"),
        )
        raise UpstreamError(f"Token endpoint returned {r.status_code}")

    try:
        body = r.json()
    except ValueError as e:
        raise UpstreamError("Token endpoint returned a non-JSON body") from e
    if not isinstance(body, dict):
        raise UpstreamError("Token endpoint returned an unexpected body")
    return body


def exchange_code(code: str, redirect_uri: str, code_verifier: str) -> TokenSet:
    """Exchange the authorization code; redirect_uri must equal the one sent to /oauth2/authorize."""
    body = _post_token(
        {
            "grant_type": "authorization_code",
            "client_id": CLIENT_ID,
            "code": code,
            "redirect_uri": redirect_uri,
            "code_verifier": code_verifier,
        }
    )
    return TokenSet.from_token_response(body)


def refresh_tokens(refresh_token: str) -> TokenSet:
    """Refresh grant. Keeps the presented refresh token unless the provider rotates it."""
    body = _post_token(
        {
            "grant_type": "refresh_token",
            "client_id": CLIENT_ID,
            "refresh_token": refresh_token,
        }
    )
    return TokenSet.from_token_response(body, refresh_token=refresh_token)
