"""Shared builders for gateway tests."""
import base64
import json


def _b64(data: dict) -> str:
    raw = json.dumps(data).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def make_id_token(**claims) -> str:
    """Unsigned JWT-shaped token; the gateway only decodes it unless a JWKS is configured."""
    header = {"alg": "RS256", "typ": "JWT", "kid": "test"}
    return f"{_b64(header)}.{_b64(claims)}.c2lnbmF0dXJl"


class MockTokenResponse:
    def __init__(self, body: dict | None = None, status_code: int = 200):
        self.status_code = status_code
        self._body = body or {}
        self.headers = {"content-type": "application/json"}
        self.text = json.dumps(self._body)

    def json(self):
        return self._body
