"""
PKCE (RFC 7636) and authorization redirect helpers for login initiation.
S256 only. Verifier and state are single-use; a fresh pair is generated per attempt.
"""
import hashlib
import secrets
from base64 import urlsafe_b64encode
from typing import NamedTuple
from urllib.parse import urlencode

from fastapi import Request

# 32 bytes -> 43 chars base64url (RFC 7636 recommendation)
_ENTROPY_BYTES = 32


class LoginChallenge(NamedTuple):
    code_verifier: str
    code_challenge: str
    state: str


def code_challenge_for(code_verifier: str) -> str:
    """base64url(SHA256(verifier)) without padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_challenge() -> LoginChallenge:
    """New verifier, S256 challenge and CSRF state for one login attempt."""
    code_verifier = secrets.token_urlsafe(_ENTROPY_BYTES)
    state = secrets.token_urlsafe(_ENTROPY_BYTES)
    return LoginChallenge(code_verifier, code_challenge_for(code_verifier), state)


def request_scheme(request: Request) -> str:
    """Scheme the browser actually used; honours X-Forwarded-Proto behind a proxy/load balancer."""
    forwarded = request.headers.get("x-forwarded-proto")
    if forwarded:
        return forwarded.split(",")[0].strip().lower()
    return request.url.scheme


def is_https(request: Request) -> bool:
    return request_scheme(request) == "https"


def callback_url(request: Request, callback_path: str) -> str:
    """
    Redirect URI derived from how the browser reached us. The provider enforces exact
    redirect_uri matching, so login and callback must compute the same value.
    """
    host = request.headers.get("host") or request.url.netloc
    return f"{request_scheme(request)}://{host}{callback_path}"


def build_authorize_url(
    *,
    provider_url: str,
    client_id: str,
    redirect_uri: str,
    scope: str,
    state: str,
    code_challenge: str,
    identity_provider: str | None = None,
) -> str:
    """Build the provider /oauth2/authorize URL. The code verifier is never part of it."""
    params = {
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "client_id": client_id,
    }
    if identity_provider:
        params["identity_provider"] = identity_provider
    params.update(
        {
            "scope": scope,
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
    )
    return f"{provider_url}/oauth2/authorize?{urlencode(params)}"
