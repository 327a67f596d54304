# HTTP API layer.
# Created: 2026-10-19
#
# Mounts the OAuth2 routers under /api (see api/v1/__init__.py).
