"""
Application factory for the event booking engine.

Process-scoped collaborators live on app.state and are built in the
lifespan: the per-user admission strategy (rate limiter), the reverse
geocoder client and the optional Redis list cache.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eventbooking import __version__
from eventbooking.core.config import get_settings
from eventbooking.core.logging import setup_logging, get_logger
from eventbooking.core.metrics import metrics_endpoint
from eventbooking.api.errors import register_exception_handlers
from eventbooking.api.router import api_router
from eventbooking.api.middleware import RequestLoggingMiddleware
from eventbooking.services.cache_service import get_redis, close_redis, get_cache_stats
from eventbooking.services.location_service import LocationResolver
from eventbooking.services.strategy_factory import build_admission_strategy

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("booking_engine_starting", version=__version__, environment=settings.ENVIRONMENT)

    app.state.admission = build_admission_strategy(settings)
    app.state.location_resolver = LocationResolver.from_settings(settings)
    logger.info(
        "booking_engine_ready",
        admission=type(app.state.admission).__name__,
        rate_limit=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        geocoder_enabled=settings.GEOCODER_ENABLED,
        list_cache=await get_redis() is not None,
    )

    try:
        yield
    finally:
        app.state.admission.reset()
        await app.state.location_resolver.aclose()
        await close_redis()
        logger.info("booking_engine_stopped")


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.APP_NAME,
        version=__version__,
        description="Event ticket booking API with rate-limited, concurrency-safe reservations",
        lifespan=lifespan,
    )

    # Browser clients send the location fix from another origin
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    application.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(application)
    application.include_router(api_router)

    @application.get("/health", tags=["Health"])
    async def health_check():
        return {
            "status": "healthy",
            "version": __version__,
            "environment": settings.ENVIRONMENT,
            "rateLimit": {
                "enabled": settings.RATE_LIMIT_ENABLED,
                "maxRequests": settings.RATE_LIMIT_MAX_REQUESTS,
                "windowSeconds": settings.RATE_LIMIT_WINDOW_SECONDS,
            },
            "cache": await get_cache_stats(),
        }

    @application.get("/metrics", tags=["Health"], include_in_schema=False)
    def metrics():
        return metrics_endpoint()

    return application


app = create_app()
