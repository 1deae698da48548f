"""
Client session: the in-memory view of the stored token set plus the gateway calls that change it.
Every failure path ends in "no session" rather than an exception in caller code.
"""
import logging
import time
from typing import Callable

import httpx

from client_app.config import GATEWAY_URL, HTTP_TIMEOUT, TOKEN_STORE_PATH, TOKEN_STORE_SECRET
from client_app.principal import Principal
from client_app.token_store import EncryptedTokenStore, TokenSet

logger = logging.getLogger(__name__)


class AuthSession:
    def __init__(
        self,
        store: EncryptedTokenStore,
        *,
        gateway_url: str = GATEWAY_URL,
        timeout: float = HTTP_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._gateway_url = gateway_url.rstrip("/")
        self._timeout = timeout
        self._http_client = http_client
        self._clock = clock
        self._tokens: TokenSet | None = None

    @property
    def tokens(self) -> TokenSet | None:
        return self._tokens

    @property
    def user(self) -> Principal | None:
        return self._tokens.principal if self._tokens else None

    def is_authenticated(self, now: float | None = None) -> bool:
        if self._tokens is None:
            return False
        return self._tokens.is_authenticated(self._clock() if now is None else now)

    def initialize(self) -> TokenSet | None:
        """Load tokens persisted by a previous run."""
        self._tokens = self._store.load()
        return self._tokens

    def login_url(self) -> str:
        return f"{self._gateway_url}/auth/login"

    def store_tokens(self, data: dict, *, keep_refresh_token: str | None = None) -> TokenSet:
        """Persist a token response as the new session, replacing the previous one whole."""
        tokens = TokenSet.from_token_response(data, now=self._clock(), refresh_token=keep_refresh_token)
        self._store.save(tokens)
        self._tokens = tokens
        logger.info("Auth tokens stored")
        return tokens

    def auth_headers(self) -> dict[str, str]:
        if not self._tokens:
            return {}
        return {"Authorization": f"{self._tokens.token_type or 'Bearer'} {self._tokens.access_token}"}

    def clear(self) -> None:
        self._store.clear()
        self._tokens = None
        logger.info("Auth cleared")

    async def _request(self, method: str, path: str, payload: dict | None = None) -> httpx.Response:
        url = f"{self._gateway_url}{path}"
        if self._http_client is not None:
            return await self._http_client.request(method, url, json=payload, timeout=self._timeout)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(method, url, json=payload)

    async def complete_sign_in(self) -> bool:
        """
        Fetch the token set of the gateway cookie session that /auth/callback just established
        and make it this session. Called from the /auth/validation page after ?auth=success.
        """
        try:
            r = await self._request("GET", "/auth/token")
            r.raise_for_status()
            data = r.json()
            if not isinstance(data, dict) or not data.get("id_token"):
                raise ValueError("token handoff has no id_token")
            self.store_tokens(data)
        except (httpx.HTTPError, ValueError, OSError) as e:
            logger.warning("Could not complete sign-in (%s)", type(e).__name__)
            return False
        return True

    async def refresh(self) -> bool:
        """
        Exchange the refresh token for new access/id tokens through the gateway.
        Any failure clears the whole session; the next action forces a fresh login.
        A response for a session that was signed out or replaced meanwhile is dropped.
        """
        current = self._tokens
        if current is None or not current.refresh_token:
            logger.warning("No refresh token available; clearing session")
            self.clear()
            return False
        user = self.user
        try:
            r = await self._request(
                "POST",
                "/auth/token/refresh",
                {"refreshToken": current.refresh_token, "username": user.email if user else None},
            )
            r.raise_for_status()
            data = r.json()
            if not isinstance(data, dict) or not data.get("id_token"):
                raise ValueError("refresh response has no id_token")
        except (httpx.HTTPError, ValueError, OSError) as e:
            if self._tokens is not current:
                logger.info("Session changed during refresh; ignoring failed refresh")
                return False
            logger.warning("Error refreshing tokens (%s); clearing session", type(e).__name__)
            self.clear()
            return False
        if self._tokens is not current:
            logger.info("Session changed during refresh; discarding refreshed tokens")
            return False
        try:
            self.store_tokens(data, keep_refresh_token=current.refresh_token)
        except (ValueError, OSError) as e:
            logger.warning("Error storing refreshed tokens (%s); clearing session", type(e).__name__)
            self.clear()
            return False
        return True

    async def sign_out(self) -> None:
        """Tell the gateway (best effort), then always drop local tokens."""
        try:
            if self._tokens and self._tokens.access_token:
                await self._request("POST", "/auth/logout")
        except httpx.HTTPError as e:
            logger.warning("Error during logout: %s", type(e).__name__)
        finally:
            self.clear()


def create_session() -> AuthSession:
    """Session over the configured store, restored from disk. Raises ConfigurationError without a secret."""
    session = AuthSession(EncryptedTokenStore(TOKEN_STORE_PATH, TOKEN_STORE_SECRET))
    session.initialize()
    return session
