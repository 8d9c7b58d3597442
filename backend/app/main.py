"""BulkCode API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map BulkCodeError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database and Shopify gateway initialized on startup via lifespan,
      released on shutdown

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - No background workers: processing advances only when a client calls
      POST /discount-sets/{id}/process
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.routes import health, discount_sets, discounts, templates
from app.config import get_settings
from app.infrastructure.database import init_db
from app.infrastructure.observability import setup_logging
from app.infrastructure.shopify_client import init_gateway

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    gateway = init_gateway(
        store_domain=settings.shopify_store_domain,
        access_token=settings.shopify_access_token,
        api_version=settings.shopify_api_version,
        max_retries=settings.shopify_max_retries,
        base_delay_ms=settings.shopify_base_delay_ms,
        max_delay_ms=settings.shopify_max_delay_ms,
        max_retry_wait_ms=settings.shopify_max_retry_wait_ms,
        timeout_seconds=settings.shopify_timeout_seconds,
    )
    logger.info("BulkCode API started", extra={"shop": settings.shopify_store_domain})
    yield
    logger.info("BulkCode API shutting down")
    await gateway.aclose()
    await db.dispose()


app = FastAPI(
    title="BulkCode API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Routes — explicit registration
app.include_router(health.router)
app.include_router(discount_sets.router)
app.include_router(discounts.router)
app.include_router(templates.router)
