"""
Audit logging for the sign-in flow. Security-relevant events only; never tokens,
verifiers, codes or full request bodies. Emails are masked.
"""
import logging

from fastapi import Request

from auth_gateway.allow_list import mask_email

audit_logger = logging.getLogger("auth_gateway.audit")

EVENT_LOGIN_STARTED = "login_started"
EVENT_LOGIN_OK = "login_ok"
EVENT_LOGIN_FAIL = "login_fail"
EVENT_LOGOUT = "logout"
EVENT_TOKEN_REFRESHED = "token_refreshed"
EVENT_TOKEN_REFRESH_FAIL = "token_refresh_fail"
EVENT_TOKEN_HANDOFF = "token_handoff"

OUTCOME_SUCCESS = "success"
OUTCOME_FAIL = "fail"


def get_client_ip(request: Request | None) -> str | None:
    """Client IP if available (request.client.host). Forwarding headers are not trusted here."""
    if request is None or request.client is None:
        return None
    return getattr(request.client, "host", None)


def log_event(
    event_type: str,
    *,
    outcome: str = OUTCOME_SUCCESS,
    email: str | None = None,
    ip: str | None = None,
    reason: str | None = None,
) -> None:
    """Emit one audit line. Failures go out at WARNING so they show with default log levels."""
    level = logging.INFO if outcome == OUTCOME_SUCCESS else logging.WARNING
    audit_logger.log(
        level,
        "event=%s outcome=%s email=%s ip=%s reason=%s",
        event_type,
        outcome,
        mask_email(email) if email else "-",
        ip or "-",
        reason or "-",
        extra={"event_type": event_type, "outcome": outcome},
    )
