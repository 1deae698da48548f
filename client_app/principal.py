"""
Principal derived from the ID token payload. Never stored on its own; recomputed whenever
the ID token changes.
"""
import logging
from dataclasses import dataclass

import jwt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    sub: str | None
    email: str | None
    name: str | None
    given_name: str | None = None
    family_name: str | None = None
    picture: str | None = None
    email_verified: bool | None = None


def principal_from_id_token(id_token: str | None) -> Principal | None:
    """Decode (not verify) the ID token; None if absent or unparsable."""
    if not id_token:
        return None
    try:
        payload = jwt.decode(id_token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        logger.warning("Could not parse user from ID token: %s", type(e).__name__)
        return None
    given, family = payload.get("given_name"), payload.get("family_name")
    name = payload.get("name")
    if not name and (given or family):
        name = " ".join(p for p in (given, family) if p)
    return Principal(
        sub=payload.get("sub"),
        email=payload.get("email"),
        name=name,
        given_name=given,
        family_name=family,
        picture=payload.get("picture"),
        email_verified=payload.get("email_verified"),
    )
