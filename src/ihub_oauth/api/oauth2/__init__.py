# OAuth2 authorization code flow with PKCE (RFC 6749 §4.1, RFC 7636).
# Created: 2026-10-19
