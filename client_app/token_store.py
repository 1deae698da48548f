"""
Encrypted persistent store for the client's token set.
Entries id_token, access_token, refresh_token, token_type, token_expiration (epoch millis)
are each zlib-compressed and Fernet-encrypted (AES + HMAC) under a key derived from the
configured secret. A store that cannot be read back counts as "no session".
"""
import json
import logging
import os
import tempfile
import time
import zlib
from base64 import urlsafe_b64encode
from dataclasses import dataclass
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from auth_gateway.errors import ConfigurationError
from client_app.principal import Principal, principal_from_id_token

logger = logging.getLogger(__name__)

KEY_ID_TOKEN = "id_token"
KEY_ACCESS_TOKEN = "access_token"
KEY_REFRESH_TOKEN = "refresh_token"
KEY_TOKEN_TYPE = "token_type"
KEY_EXPIRATION = "token_expiration"
STORAGE_KEYS = (KEY_ID_TOKEN, KEY_ACCESS_TOKEN, KEY_REFRESH_TOKEN, KEY_TOKEN_TYPE, KEY_EXPIRATION)

# Used when a token response carries no expires_in
DEFAULT_EXPIRES_IN = 3600


@dataclass(frozen=True)
class TokenSet:
    access_token: str
    expires_at: float  # epoch seconds, fixed at issuance
    id_token: str | None = None
    refresh_token: str | None = None
    token_type: str = "Bearer"

    @classmethod
    def from_token_response(
        cls,
        data: dict,
        *,
        now: float | None = None,
        refresh_token: str | None = None,
    ) -> "TokenSet":
        """expires_at = now + expires_in. refresh_token is kept when the response does not rotate it."""
        access_token = data.get("access_token")
        if not access_token:
            raise ValueError("token response has no access_token")
        try:
            expires_in = int(data.get("expires_in") or DEFAULT_EXPIRES_IN)
        except (TypeError, ValueError):
            expires_in = DEFAULT_EXPIRES_IN
        issued = time.time() if now is None else now
        return cls(
            access_token=access_token,
            expires_at=issued + expires_in,
            id_token=data.get("id_token"),
            refresh_token=data.get("refresh_token") or refresh_token,
            token_type=data.get("token_type") or "Bearer",
        )

    def is_authenticated(self, now: float | None = None) -> bool:
        """Access token present and not yet expired."""
        now = time.time() if now is None else now
        return bool(self.access_token) and self.expires_at > now

    def seconds_remaining(self, now: float | None = None) -> float:
        now = time.time() if now is None else now
        return self.expires_at - now

    @property
    def principal(self) -> Principal | None:
        return principal_from_id_token(self.id_token)

    def to_entries(self) -> dict[str, str]:
        entries = {
            KEY_ACCESS_TOKEN: self.access_token,
            KEY_TOKEN_TYPE: self.token_type,
            KEY_EXPIRATION: str(int(self.expires_at * 1000)),
        }
        if self.id_token:
            entries[KEY_ID_TOKEN] = self.id_token
        if self.refresh_token:
            entries[KEY_REFRESH_TOKEN] = self.refresh_token
        return entries

    @classmethod
    def from_entries(cls, entries: dict[str, str]) -> "TokenSet | None":
        access_token = entries.get(KEY_ACCESS_TOKEN)
        expiration = entries.get(KEY_EXPIRATION)
        if not access_token or not expiration:
            return None
        return cls(
            access_token=access_token,
            expires_at=int(expiration) / 1000,
            id_token=entries.get(KEY_ID_TOKEN),
            refresh_token=entries.get(KEY_REFRESH_TOKEN),
            token_type=entries.get(KEY_TOKEN_TYPE) or "Bearer",
        )


def is_authenticated(tokens: TokenSet | None, now: float | None = None) -> bool:
    return tokens is not None and tokens.is_authenticated(now)


def _derive_fernet(secret: str) -> Fernet:
    key = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=None,
        info=b"client-token-store",
    ).derive(secret.encode("utf-8"))
    return Fernet(urlsafe_b64encode(key))


class EncryptedTokenStore:
    """
    One JSON document of encrypted entries, replaced atomically on every save so a reader
    never sees access and id tokens from different sign-ins.
    """

    def __init__(self, path: str | Path, secret: str):
        if not secret:
            raise ConfigurationError("Token store secret is not configured (CLIENT_TOKEN_STORE_SECRET)")
        self.path = Path(path)
        self._fernet = _derive_fernet(secret)

    def _encrypt(self, value: str) -> str:
        return self._fernet.encrypt(zlib.compress(value.encode("utf-8"))).decode("ascii")

    def _decrypt(self, value: str) -> str:
        return zlib.decompress(self._fernet.decrypt(value.encode("ascii"))).decode("utf-8")

    def save(self, tokens: TokenSet) -> None:
        document = {k: self._encrypt(v) for k, v in tokens.to_entries().items()}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".tokens-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f)
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def load(self) -> TokenSet | None:
        """Stored token set, or None when absent, corrupted or encrypted under another secret."""
        if not self.path.exists():
            return None
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
            entries = {k: self._decrypt(document[k]) for k in STORAGE_KEYS if k in document}
            return TokenSet.from_entries(entries)
        except (OSError, ValueError, TypeError, AttributeError, InvalidToken, zlib.error) as e:
            logger.warning("Stored session unreadable (%s); treating as signed out", type(e).__name__)
            return None

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove token store %s: %s", self.path, e)
