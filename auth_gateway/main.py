"""
Auth Gateway: server side of the sign-in flow.
GET /auth/login redirects to the provider with PKCE + state; GET /auth/callback exchanges the
code, applies the email allow-list and sets session cookies. Also /auth/logout, /auth/user,
GET /auth/token, /auth/token/refresh and /health.
"""
import asyncio
import contextlib
import logging
import time
from contextlib import asynccontextmanager
from urllib.parse import urlencode

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from auth_gateway.allow_list import validate
from auth_gateway.audit import (
    EVENT_LOGIN_FAIL,
    EVENT_LOGIN_OK,
    EVENT_LOGIN_STARTED,
    EVENT_LOGOUT,
    EVENT_TOKEN_HANDOFF,
    EVENT_TOKEN_REFRESH_FAIL,
    EVENT_TOKEN_REFRESHED,
    OUTCOME_FAIL,
    get_client_ip,
    log_event,
)
from auth_gateway.config import (
    ALLOWED_EMAIL_DOMAINS,
    ALLOWED_EMAILS,
    CALLBACK_PATH,
    CLIENT_ID,
    DEFAULT_EXPIRES_IN,
    FLOW_SWEEP_INTERVAL,
    IDENTITY_PROVIDER,
    JWKS_URI,
    LANDING_PATH,
    PROVIDER_URL,
    SCOPE,
)
from auth_gateway.cookies import ACCESS_COOKIE, ID_COOKIE, REFRESH_COOKIE, clear_session_cookies, issue_session_cookies
from auth_gateway.errors import AuthError, AuthorizationDenied, ProtocolError, SessionExpired, UpstreamError
from auth_gateway.flow_store import store_flow, sweep_expired, take_flow
from auth_gateway.id_token import decode_id_token
from auth_gateway.pkce import build_authorize_url, callback_url, generate_challenge, is_https
from auth_gateway.provider import exchange_code, refresh_tokens
from auth_gateway.tokens import TokenSet

logger = logging.getLogger(__name__)


async def _sweep_periodically(interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            sweep_expired()
        except Exception:
            logger.exception("Pending-authorization sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the pending-authorization sweep on its own timer while the app is up."""
    task = asyncio.create_task(_sweep_periodically(FLOW_SWEEP_INTERVAL))
    try:
        yield
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


app = FastAPI(title="Auth Gateway", version="1.0.0", lifespan=lifespan)


def _landing_redirect(**params: str) -> RedirectResponse:
    return RedirectResponse(url=f"{LANDING_PATH}?{urlencode(params)}", status_code=302)


def _error_redirect(code: str, message: str | None = None) -> RedirectResponse:
    """Failure terminal state: coarse code only, never tokens or verifiers."""
    if message:
        return _landing_redirect(error=code, message=message)
    return _landing_redirect(error=code)


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "auth_gateway"}


@app.get("/auth/login")
def login(request: Request):
    """
    Generate PKCE verifier/challenge and state, remember state -> verifier, redirect to the
    provider /oauth2/authorize. redirect_uri follows the host the browser used.
    """
    try:
        challenge = generate_challenge()
    except Exception:
        logger.exception("Could not generate PKCE parameters")
        return JSONResponse(status_code=500, content={"error": "Failed to initiate login"})

    store_flow(challenge.state, challenge.code_verifier)
    url = build_authorize_url(
        provider_url=PROVIDER_URL,
        client_id=CLIENT_ID,
        redirect_uri=callback_url(request, CALLBACK_PATH),
        scope=SCOPE,
        state=challenge.state,
        code_challenge=challenge.code_challenge,
        identity_provider=IDENTITY_PROVIDER,
    )
    log_event(EVENT_LOGIN_STARTED, ip=get_client_ip(request))
    return RedirectResponse(url=url, status_code=302)


@app.get("/auth/callback")
def callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
):
    """
    Provider redirect target. error -> oauth_error; no code/state -> missing_parameters;
    unknown, expired or replayed state -> invalid_state; exchange failure -> token_exchange_failed;
    email outside the allow-list -> domain_not_allowed. Success sets cookies and lands on ?auth=success.
    """
    ip = get_client_ip(request)

    if error:
        if state:
            # Burn the state so the attempt cannot be resumed
            take_flow(state)
        log_event(EVENT_LOGIN_FAIL, outcome=OUTCOME_FAIL, ip=ip, reason="oauth_error")
        return _error_redirect("oauth_error")

    if not code or not state:
        log_event(EVENT_LOGIN_FAIL, outcome=OUTCOME_FAIL, ip=ip, reason="missing_parameters")
        return _error_redirect("missing_parameters")

    flow = take_flow(state)
    if flow is None:
        log_event(EVENT_LOGIN_FAIL, outcome=OUTCOME_FAIL, ip=ip, reason="invalid_state")
        return _error_redirect("invalid_state")

    email = None
    try:
        tokens = exchange_code(code, callback_url(request, CALLBACK_PATH), flow.code_verifier)
        claims = decode_id_token(tokens.id_token, client_id=CLIENT_ID, jwks_uri=JWKS_URI)
        email = claims.get("email")
        decision = validate(claims, ALLOWED_EMAIL_DOMAINS, ALLOWED_EMAILS)
        if not decision.allowed:
            raise AuthorizationDenied(decision.reason)
    except AuthorizationDenied as e:
        log_event(EVENT_LOGIN_FAIL, outcome=OUTCOME_FAIL, email=email, ip=ip, reason=e.code)
        return _error_redirect(e.code, e.message)
    except AuthError as e:
        log_event(EVENT_LOGIN_FAIL, outcome=OUTCOME_FAIL, email=email, ip=ip, reason=e.code)
        return _error_redirect(e.code)
    except Exception:
        logger.exception("Unexpected error in /auth/callback")
        log_event(EVENT_LOGIN_FAIL, outcome=OUTCOME_FAIL, email=email, ip=ip, reason=UpstreamError.code)
        return _error_redirect(UpstreamError.code)

    response = _landing_redirect(auth="success")
    issue_session_cookies(response, tokens, is_https(request))
    log_event(EVENT_LOGIN_OK, email=email, ip=ip)
    return response


@app.post("/auth/logout")
def logout(request: Request):
    """Clear all session cookies (same attributes as when they were set)."""
    response = JSONResponse({"success": True, "message": "Logged out successfully"})
    clear_session_cookies(response, is_https(request))
    log_event(EVENT_LOGOUT, ip=get_client_ip(request))
    return response


def _cookie_session(request: Request) -> dict | JSONResponse:
    """ID token claims of the cookie session, or the 401 response when missing, malformed or expired."""
    id_token = request.cookies.get(ID_COOKIE)
    access_token = request.cookies.get(ACCESS_COOKIE)
    if not id_token or not access_token:
        return JSONResponse(status_code=401, content={"error": "Not authenticated"})

    try:
        payload = decode_id_token(id_token, client_id=CLIENT_ID, jwks_uri=JWKS_URI)
    except ProtocolError:
        return JSONResponse(status_code=401, content={"error": "Invalid token format"})

    exp = payload.get("exp")
    if isinstance(exp, (int, float)) and exp < int(time.time()):
        return JSONResponse(status_code=401, content={"error": "Token expired"})
    return payload


@app.get("/auth/user")
def current_user(request: Request):
    """Decode the id_token cookie into the current user; 401 when missing, malformed or expired."""
    payload = _cookie_session(request)
    if isinstance(payload, JSONResponse):
        return payload

    return {
        "user": {
            "sub": payload.get("sub"),
            "email": payload.get("email"),
            "name": payload.get("name"),
            "picture": payload.get("picture"),
            "email_verified": payload.get("email_verified"),
        },
        "isAuthenticated": True,
    }


@app.get("/auth/token")
def session_tokens(request: Request):
    """
    Hand the cookie session's tokens to a client that keeps its own encrypted store.
    expires_in is what is left of the id_token lifetime. Same 401s as /auth/user.
    """
    payload = _cookie_session(request)
    if isinstance(payload, JSONResponse):
        return payload

    now = time.time()
    exp = payload.get("exp")
    expires_in = max(int(exp - now), 0) if isinstance(exp, (int, float)) else DEFAULT_EXPIRES_IN
    tokens = TokenSet(
        id_token=request.cookies[ID_COOKIE],
        access_token=request.cookies[ACCESS_COOKIE],
        refresh_token=request.cookies.get(REFRESH_COOKIE),
        token_type="Bearer",
        expires_in=expires_in,
        expires_at=now + expires_in,
    )
    log_event(EVENT_TOKEN_HANDOFF, email=payload.get("email"), ip=get_client_ip(request))
    return JSONResponse(tokens.to_response(), headers={"Cache-Control": "no-store"})


class RefreshRequest(BaseModel):
    refreshToken: str | None = None
    username: str | None = None


@app.post("/auth/token/refresh")
def refresh(request: Request, body: RefreshRequest | None = None):
    """
    Refresh grant for clients holding tokens (JSON body) or the cookie session (refresh_token cookie).
    Cookie sessions get new cookies; a failed refresh clears them and returns 401 session_expired.
    """
    ip = get_client_ip(request)
    username = body.username if body else None
    from_cookie = not (body and body.refreshToken)
    refresh_token = request.cookies.get(REFRESH_COOKIE) if from_cookie else body.refreshToken

    try:
        if not refresh_token:
            raise SessionExpired("No refresh token available")
        try:
            tokens = refresh_tokens(refresh_token)
        except UpstreamError as e:
            raise SessionExpired("Token refresh failed") from e
    except SessionExpired as e:
        log_event(EVENT_TOKEN_REFRESH_FAIL, outcome=OUTCOME_FAIL, email=username, ip=ip, reason=e.message)
        response = JSONResponse(status_code=401, content={"error": e.code, "message": e.message})
        if from_cookie:
            clear_session_cookies(response, is_https(request))
        return response

    response = JSONResponse(tokens.to_response())
    if from_cookie:
        issue_session_cookies(response, tokens, is_https(request))
    log_event(EVENT_TOKEN_REFRESHED, email=username, ip=ip)
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "auth_gateway.main:app",
        host="127.0.0.1",
        port=8080,
        reload=True,
    )
