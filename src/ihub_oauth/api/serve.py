"""ASGI application and server runner for ``ihub-oauth serve``."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def create_api_app():
    """Build the FastAPI application with the OAuth2 routers mounted."""
    from fastapi import FastAPI
    from fastapi.middleware.cors import CORSMiddleware

    from ihub_oauth import __version__
    from ihub_oauth.api.v1 import mount_routers
    from ihub_oauth.config import get_settings

    settings = get_settings()
    base_path = settings.base_path.rstrip("/")

    app = FastAPI(
        title="iHub OAuth",
        description="OAuth 2.0 authorization endpoint (authorization code + PKCE).",
        version=__version__,
        docs_url=f"{base_path}/api/docs",
        redoc_url=None,
        openapi_url=f"{base_path}/api/openapi.json",
    )

    if settings.cors_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allowed_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type"],
        )

    mount_routers(app, prefix=f"{base_path}/api")

    @app.get(f"{base_path}/health", include_in_schema=False)
    async def health():
        return {"status": "ok", "oauth_enabled": settings.oauth_enabled}

    return app


def run_api_server(host: str = "127.0.0.1", port: int = 8080, dev: bool = False) -> None:
    """Start uvicorn with the API app."""
    import uvicorn

    logger.info("Serving OAuth endpoints on http://%s:%d/api/oauth/authorize", host, port)

    if dev:
        import pathlib

        src_dir = str(pathlib.Path(__file__).resolve().parent.parent)
        uvicorn.run(
            "ihub_oauth.api.serve:create_api_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            reload_dirs=[src_dir],
            reload_includes=["*.py"],
            log_level="debug",
        )
    else:
        uvicorn.run(create_api_app(), host=host, port=port)
