"""
Error taxonomy for the sign-in flow. Each error carries a coarse machine-readable code
that is safe to put in a redirect; the message never contains tokens or verifiers.
"""


class AuthError(Exception):
    """Base class; `code` ends up as ?error=<code> on the landing route."""

    code = "auth_error"

    def __init__(self, message: str = "", *, code: str | None = None):
        super().__init__(message or self.code)
        self.message = message
        if code is not None:
            self.code = code


class ConfigurationError(AuthError):
    """Missing allow-list or secret. Fatal for the request; never permissive."""

    code = "configuration_error"


class ProtocolError(AuthError):
    """Malformed code, state or token shape."""

    code = "invalid_request"


class AuthorizationDenied(AuthError):
    """Email or domain not on the allow-list. Message is shown to the user."""

    code = "domain_not_allowed"


class UpstreamError(AuthError):
    """Identity provider network/HTTP failure. User may retry by logging in again."""

    code = "token_exchange_failed"


class SessionExpired(AuthError):
    """Refresh failed; session is cleared and the user must sign in again."""

    code = "session_expired"
