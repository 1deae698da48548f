"""
ID token decoding. With OAUTH_JWKS_URI set, the signature is verified via the provider's JWKS
(RS256, aud = client_id). Without it the payload is only decoded, which must not be trusted
for anything beyond the allow-list check; a warning is logged once.
"""
import logging

import jwt
from jwt import PyJWKClient

from auth_gateway.errors import ProtocolError

logger = logging.getLogger(__name__)

# Single shared client; PyJWKClient caches the JWK set and keys
_jwks_client: PyJWKClient | None = None
_warned_unverified = False


def get_jwks_client(jwks_uri: str) -> PyJWKClient:
    global _jwks_client
    if _jwks_client is None or _jwks_client.uri != jwks_uri:
        _jwks_client = PyJWKClient(uri=jwks_uri, cache_jwk_set=True, lifespan=300)
    return _jwks_client


def decode_unverified(token: str) -> dict:
    """Payload of a JWT without signature or claim checks. Raises ProtocolError if malformed."""
    if not token or token.count(".") != 2:
        raise ProtocolError("Invalid token format", code="invalid_token")
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        logger.debug("ID token decode failed: %s", e)
        raise ProtocolError("Invalid token format", code="invalid_token") from e
    if not isinstance(payload, dict):
        raise ProtocolError("Invalid token payload", code="invalid_token")
    return payload


def decode_id_token(token: str, *, client_id: str, jwks_uri: str | None = None) -> dict:
    """Return ID token claims; verified when jwks_uri is configured."""
    global _warned_unverified
    if not jwks_uri:
        if not _warned_unverified:
            logger.warning("OAUTH_JWKS_URI not set: ID tokens are decoded without signature verification")
            _warned_unverified = True
        return decode_unverified(token)
    try:
        signing_key = get_jwks_client(jwks_uri).get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=client_id,
            options={"verify_exp": True, "verify_aud": True},
        )
    except (jwt.InvalidTokenError, jwt.PyJWKClientError) as e:
        logger.debug("ID token verification failed: %s", e)
        raise ProtocolError("ID token verification failed", code="invalid_token") from e
