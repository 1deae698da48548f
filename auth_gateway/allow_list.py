"""
Organisation allow-list for sign-in. Decides from the ID token payload whether the
email (or its domain) may complete login. An empty allow-list denies everyone.
"""
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MSG_CONFIGURATION = "Configuration error: Allowed email domains not set."
MSG_EMAIL_NOT_FOUND = "Email not found in token"
MSG_INVALID_EMAIL = "Invalid email format"


@dataclass(frozen=True)
class AllowListDecision:
    allowed: bool
    reason: str


def parse_allow_list(raw: str | None) -> frozenset[str]:
    """Comma-separated string -> set of trimmed, lower-cased, non-empty entries."""
    if not raw:
        return frozenset()
    return frozenset(item.strip().lower() for item in raw.split(",") if item.strip())


def email_domain(email: str) -> str | None:
    """Domain after the last '@', lower-cased; None if there is no local part or domain."""
    local, sep, domain = email.strip().rpartition("@")
    if not sep or not local or not domain:
        return None
    return domain.lower()


def mask_email(email: str | None) -> str:
    """j***@corp.com; safe for logs."""
    if not email or "@" not in email:
        return "***"
    local, _, domain = email.rpartition("@")
    return f"{local[:1]}***@{domain}"


def validate(
    payload: dict,
    allowed_domains: frozenset[str] | set[str],
    allowed_emails: frozenset[str] | set[str] = frozenset(),
) -> AllowListDecision:
    """
    Check the email claim against the allow-lists.
    Only domains configured -> domain must match. Only emails -> address must be listed.
    Both -> both must match. Neither -> misconfiguration, always denied.
    email_verified=false is logged but does not block on its own.
    """
    if not allowed_domains and not allowed_emails:
        logger.error("No email allow-list configured (ALLOWED_EMAIL_DOMAINS / ALLOWED_EMAILS); denying sign-in")
        return AllowListDecision(False, MSG_CONFIGURATION)

    email = payload.get("email")
    if not email or not isinstance(email, str):
        return AllowListDecision(False, MSG_EMAIL_NOT_FOUND)

    if payload.get("email_verified") in (False, "false"):
        logger.warning("Email not verified for: %s", mask_email(email))

    domain = email_domain(email)
    if domain is None:
        return AllowListDecision(False, MSG_INVALID_EMAIL)
    normalized = email.strip().lower()

    email_ok = normalized in allowed_emails
    domain_ok = domain in allowed_domains

    if allowed_domains and allowed_emails:
        if email_ok and domain_ok:
            return AllowListDecision(True, "Email and domain both allowed")
        if not domain_ok:
            return AllowListDecision(False, f"Access denied. Email domain '{domain}' not authorized.")
        return AllowListDecision(False, "Access denied. Email address not authorized.")

    if allowed_emails:
        if email_ok:
            return AllowListDecision(True, "Email explicitly allowed")
        return AllowListDecision(False, "Access denied. Email address not authorized.")

    if domain_ok:
        logger.info("Domain validation successful for: %s", domain)
        return AllowListDecision(True, "Email domain allowed")
    logger.info("Domain validation failed for: %s", domain)
    return AllowListDecision(False, f"Access denied. Email domain '{domain}' not authorized.")
