# API router aggregation.
# Created: 2026-10-19
#
# mount_routers(app) registers the domain routers under /api, giving
# /api/oauth/authorize and /api/oauth/authorize/decision.

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

API_PREFIX = "/api"

# (module_path, attr_name, tag)
_ROUTERS: list[tuple[str, str, str]] = [
    ("ihub_oauth.api.v1.oauth2", "router", "OAuth2"),
]


def mount_routers(app: FastAPI, prefix: str = API_PREFIX) -> None:
    """Mount every domain router on *app* under *prefix*.

    A router that fails to import is a deployment error, so it propagates.
    """
    import importlib

    from fastapi import APIRouter

    for module_path, attr_name, tag in _ROUTERS:
        mod = importlib.import_module(module_path)
        router: APIRouter = getattr(mod, attr_name)
        app.include_router(router, prefix=prefix)
        logger.debug("Mounted router: %s (%s)", module_path, tag)
