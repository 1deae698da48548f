"""
Client configuration. Resolved once from the environment at startup.
The token store secret is deployment configuration; there is no built-in default.
"""
import os
from pathlib import Path

# Auth Gateway base URL (login, logout, token refresh)
GATEWAY_URL = os.environ.get("CLIENT_GATEWAY_URL", "http://127.0.0.1:8080").rstrip("/")

# Encrypted token store location and secret
TOKEN_STORE_PATH = Path(
    os.environ.get("CLIENT_TOKEN_STORE_PATH", str(Path.home() / ".config" / "workspace-sso" / "tokens.json"))
)
TOKEN_STORE_SECRET = os.environ.get("CLIENT_TOKEN_STORE_SECRET", "")

# Refresh scheduler: check every REFRESH_INTERVAL seconds, refresh when less than
# REFRESH_THRESHOLD seconds remain on the access token
REFRESH_INTERVAL = float(os.environ.get("CLIENT_REFRESH_INTERVAL", "60"))
REFRESH_THRESHOLD = float(os.environ.get("CLIENT_REFRESH_THRESHOLD", "300"))

# Timeout for gateway calls (seconds)
HTTP_TIMEOUT = float(os.environ.get("CLIENT_HTTP_TIMEOUT", "10"))
