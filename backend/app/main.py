"""LexDesk API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly, one router per resource (no auto-discovery)
    - Global error handlers map LexDeskError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py to keep this module's imports flat
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.routes import (
    activity, bank_accounts, bank_matches, bank_reconciliations, bank_transactions,
    cases, currency, employees, health, integrations, invoices, leave_requests,
    ledger_entries, match_rules, onboarding, quality, referrals, reports,
)
from app.config import get_settings
from app.infrastructure import database
from app.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)

SERVICE_NAME = "lexdesk-api"
SERVICE_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("LexDesk API started")
    yield
    if database.db_manager:
        await database.db_manager.dispose()
    logger.info("LexDesk API shutting down")


app = FastAPI(title="LexDesk API", version=SERVICE_VERSION, lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Routes: explicit registration
for module in (
    health, activity,
    bank_accounts, bank_transactions, ledger_entries, bank_reconciliations,
    bank_matches, match_rules, currency,
    invoices, referrals,
    employees, leave_requests, onboarding,
    cases, quality, reports, integrations,
):
    app.include_router(module.router)
