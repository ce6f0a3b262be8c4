from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .container import build_container
from .logging import configure_logging
from ..presentation.api.routers import admin_subscriptions as admin_subscriptions_router

logger = logging.getLogger(__name__)


def create_application() -> FastAPI:
    settings = Settings()

    app = FastAPI(title="Subdomain Billing Admin", lifespan=_create_lifespan(settings))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(admin_subscriptions_router.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        container = app.state.container  # type: ignore[attr-defined]
        return {"ok": True, "stripe": container.stripe_service.is_enabled()}

    return app


def _create_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        container = build_container(settings)
        app.state.container = container  # type: ignore[attr-defined]
        if not settings.admin_api_token:
            logger.warning("ADMIN_API_TOKEN is not set; admin endpoints will reject every request")
        logger.info("Subscription store ready at %s", settings.database_path)
        yield

    return lifespan
