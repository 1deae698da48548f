"""
Pytest configuration for auth_gateway. Environment is set before the app (and config) is imported.
"""
import os

os.environ["OAUTH_PROVIDER_DOMAIN"] = "idp.example.com"
os.environ["OAUTH_CLIENT_ID"] = "test-client"
os.environ["ALLOWED_EMAIL_DOMAINS"] = "corp.com, Example.org"
# Allow-list of individual emails would change domain-only semantics in route tests
os.environ.pop("ALLOWED_EMAILS", None)
os.environ.pop("OAUTH_JWKS_URI", None)
