"""
Token set issued by the provider for one authenticated principal.
expires_at is fixed at issuance (now + expires_in) and the set is always replaced whole.
"""
import time
from dataclasses import dataclass

from auth_gateway.config import DEFAULT_EXPIRES_IN
from auth_gateway.errors import UpstreamError


@dataclass(frozen=True)
class TokenSet:
    id_token: str
    access_token: str
    refresh_token: str | None
    token_type: str
    expires_in: int
    expires_at: float

    @classmethod
    def from_token_response(
        cls,
        data: dict,
        *,
        now: float | None = None,
        refresh_token: str | None = None,
    ) -> "TokenSet":
        """
        Build from a /oauth2/token JSON body. refresh_token is the fallback when the
        provider does not rotate it (refresh grant responses omit it).
        """
        access_token = data.get("access_token")
        id_token = data.get("id_token")
        if not access_token or not id_token:
            raise UpstreamError("Token response missing access_token or id_token")
        try:
            expires_in = int(data.get("expires_in") or DEFAULT_EXPIRES_IN)
        except (TypeError, ValueError):
            expires_in = DEFAULT_EXPIRES_IN
        issued = time.time() if now is None else now
        return cls(
            id_token=id_token,
            access_token=access_token,
            refresh_token=data.get("refresh_token") or refresh_token,
            token_type=data.get("token_type") or "Bearer",
            expires_in=expires_in,
            expires_at=issued + expires_in,
        )

    def to_response(self) -> dict:
        """JSON body for clients that persist tokens themselves."""
        body = {
            "id_token": self.id_token,
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
        }
        if self.refresh_token:
            body["refresh_token"] = self.refresh_token
        return body
