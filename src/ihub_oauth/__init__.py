"""ihub-oauth: OAuth 2.0 authorization endpoint with PKCE and consent."""

__version__ = "0.1.0"
