"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from radio_player.api.dependencies import build_services
from radio_player.api.routes import router
from radio_player.config import Settings, settings

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# CORS configuration
# ---------------------------------------------------------------------------

_DEFAULT_ORIGINS = {
    "http://localhost:3000",
    "http://127.0.0.1:3000",
}


def _get_allowed_origins(config: Settings) -> set[str]:
    origins = set(_DEFAULT_ORIGINS)
    if config.allowed_origins:
        origins.update(o.strip() for o in config.allowed_origins.split(",") if o.strip())
    return origins


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(config: Settings = settings, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    allowed_origins = _get_allowed_origins(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the service container on startup and dispose of it on shutdown."""
        logger.info(
            "app.startup",
            allowed_origins=sorted(allowed_origins),
            radiox_api_base=config.radiox_api_base,
        )
        services = build_services(config, transport=transport)
        app.state.services = services
        try:
            await services.start()
            yield
        finally:
            await services.aclose()
            logger.info("app.shutdown")

    app = FastAPI(
        title="RadioX Player",
        description="Show catalog, generation and audio proxy for the RadioX player",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    app.include_router(router)

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    return app


app = create_app()
