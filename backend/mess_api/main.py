"""
Smart Mess API - Main Application Entry Point

Cafeteria management backend:
- Weekly menu voting with one current vote per user and slot
- Meal bookings with QR check-in and a guarded status lifecycle
- Points ledger applied as storage-side relative updates
- Structured logging with request correlation, Prometheus metrics
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from mess_api.api.middleware import RequestLoggingMiddleware
from mess_api.api.router import api_router
from mess_api.core.config import Settings, get_settings
from mess_api.core.exceptions import MessError, mess_error_handler, unhandled_error_handler
from mess_api.core.logging import get_logger, setup_logging
from mess_api.core.metrics import metrics_endpoint
from mess_api.db.session import create_engine, create_session_factory
from mess_api.services.ai_service import NutritionAdvisor
from mess_api.services.cache_service import MenuCache

logger = get_logger(__name__)


def _build_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the engine, cache and AI client on startup; release them on shutdown."""
        setup_logging(settings)
        logger.info(
            "application_starting",
            app=settings.APP_NAME,
            version=settings.APP_VERSION,
            environment=settings.ENVIRONMENT,
        )

        engine = create_engine(settings)
        app.state.session_factory = create_session_factory(engine)
        app.state.menu_cache = await MenuCache.connect(settings)
        app.state.advisor = NutritionAdvisor.from_settings(settings)

        if not app.state.menu_cache.enabled:
            logger.warning("menu_cache_disabled", message="Serving menus from the database only")
        if not settings.GEMINI_API_KEY:
            logger.warning("nutrition_advice_disabled", message="GEMINI_API_KEY is not set")

        try:
            yield
        finally:
            await app.state.advisor.close()
            await app.state.menu_cache.close()
            await engine.dispose()
            logger.info("application_shutdown")

    return lifespan


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Mess management API: menu voting, meal bookings, QR check-in and points",
        lifespan=_build_lifespan(settings),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(MessError, mess_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(api_router)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Liveness plus menu cache status."""
        cache: Optional[MenuCache] = getattr(request.app.state, "menu_cache", None)
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "cache": await cache.stats() if cache else {"status": "disabled"},
        }

    @app.get("/metrics", tags=["Health"], include_in_schema=False)
    async def metrics():
        return metrics_endpoint()

    @app.get("/", tags=["Root"])
    async def root():
        return {"service": settings.APP_NAME, "version": settings.APP_VERSION, "docs": "/docs"}

    return app


app = create_app()
