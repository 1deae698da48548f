"""
Auth Gateway configuration. Resolved once from the environment at startup.
No secrets in this file; client id, provider domain and allow-lists come from env.
"""
import os

from auth_gateway.allow_list import parse_allow_list

# Identity provider (Cognito hosted UI domain, no scheme)
PROVIDER_DOMAIN = os.environ.get("OAUTH_PROVIDER_DOMAIN", "example.auth.ap-northeast-1.amazoncognito.com").strip()
PROVIDER_URL = f"https://{PROVIDER_DOMAIN}".rstrip("/")

# Public client registered at the provider (PKCE, no client secret)
CLIENT_ID = os.environ.get("OAUTH_CLIENT_ID", "test-client")

# Scopes requested at /oauth2/authorize
SCOPE = os.environ.get("OAUTH_SCOPE", "openid email profile")

# Federated identity provider hint passed to the hosted UI
IDENTITY_PROVIDER = os.environ.get("OAUTH_IDENTITY_PROVIDER", "Google")

# Timeout (seconds) for every round trip to the provider token endpoint
HTTP_TIMEOUT = float(os.environ.get("OAUTH_HTTP_TIMEOUT", "10"))

# If set, ID tokens are verified against this JWKS; otherwise they are only decoded
JWKS_URI = os.environ.get("OAUTH_JWKS_URI", "").strip() or None

# Comma-separated allow-lists. Empty domains and emails together = every sign-in denied.
ALLOWED_EMAIL_DOMAINS_RAW = os.environ.get("ALLOWED_EMAIL_DOMAINS", "")
ALLOWED_EMAILS_RAW = os.environ.get("ALLOWED_EMAILS", "")
ALLOWED_EMAIL_DOMAINS = parse_allow_list(ALLOWED_EMAIL_DOMAINS_RAW)
ALLOWED_EMAILS = parse_allow_list(ALLOWED_EMAILS_RAW)

# Path the provider redirects back to; must be registered at the provider for every host
CALLBACK_PATH = "/auth/callback"

# Application route the browser lands on after the callback (success or failure)
LANDING_PATH = os.environ.get("APP_LANDING_PATH", "/")

# Pending authorization lifetime and background sweep period (seconds)
FLOW_TTL = 600
FLOW_SWEEP_INTERVAL = int(os.environ.get("FLOW_SWEEP_INTERVAL", "60"))

# Fallback when the provider omits expires_in
DEFAULT_EXPIRES_IN = 3600

# Refresh cookie outlives the access token by policy: 30 days
REFRESH_COOKIE_MAX_AGE = 30 * 24 * 60 * 60
