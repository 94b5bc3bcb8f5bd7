from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from . import __version__
from .config import settings
from .logging import configure_logging, logger
from .middleware import AccessLogAndMetricsMiddleware, RequestIDMiddleware
from .providers import get_embedding_provider
from .routers import cards, config as cfg, dashboard, health, review


@asynccontextmanager
async def _lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Resolve the embedding provider once so strict-mode misconfiguration fails at boot."""
    provider = get_embedding_provider()
    logger.info(
        "embedding_provider_ready",
        provider=provider.name() if provider is not None else None,
        strict_mode=settings.strict_mode,
    )
    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    configure_logging()
    app = FastAPI(title="LearnCurve API", version=__version__, lifespan=_lifespan)

    configured_origins = list(settings.allowed_cors_origins)
    allow_credentials = bool(configured_origins)
    if not configured_origins:
        configured_origins = ["*"]
    # ワイルドカード許可時は資格情報を無効化し、明示されたオリジンだけ許可する
    app.add_middleware(
        CORSMiddleware,
        allow_origins=configured_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Starlette では後から追加したミドルウェアが外側で実行される。
    # AccessLog は RequestID が採番した request_id を参照する。
    app.add_middleware(AccessLogAndMetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health.router)
    app.include_router(cfg.router, prefix="/api")
    app.include_router(cards.router, prefix="/api/cards")
    app.include_router(review.router, prefix="/api/review")
    app.include_router(dashboard.router, prefix="/api")

    return app


app = create_app()
