"""Gigboard API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map MarketplaceError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, cache and mailer initialized on startup via the lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Tables are created on startup only when AUTO_CREATE_TABLES is set; deployed
      databases are expected to carry the schema already
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gigboard.api.error_handlers import register_error_handlers
from gigboard.api.routes import (
    account_recovery, admin_moderation, client_projects, freelancer_work, health,
    meetings, public_views, ratings,
)
from gigboard.config import get_settings
from gigboard.infrastructure import cache_store as cache_module
from gigboard.infrastructure import database as db_module
from gigboard.infrastructure.cache_store import init_cache
from gigboard.infrastructure.database import init_db
from gigboard.infrastructure.mailer import init_mailer
from gigboard.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.auto_create_tables:
        await db_module.db_manager.create_tables()
    init_cache(settings.redis_url)
    init_mailer(
        settings.smtp_host,
        settings.smtp_port,
        settings.mail_sender,
        settings.smtp_username,
        settings.smtp_password,
    )
    logger.info("Gigboard API started")
    yield
    logger.info("Gigboard API shutting down")
    if cache_module.cache_store:
        await cache_module.cache_store.close()
    if db_module.db_manager:
        await db_module.db_manager.dispose()


app = FastAPI(title="Gigboard API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(account_recovery.router)
app.include_router(client_projects.router)
app.include_router(freelancer_work.router)
app.include_router(ratings.router)
app.include_router(meetings.router)
app.include_router(admin_moderation.router)
app.include_router(public_views.router)

register_error_handlers(app)
