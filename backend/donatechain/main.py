"""DonateChain Mirror API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery: ExMA anti-pattern)
    - Global error handlers map DonateChainError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Logging configured on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api.error_handlers (ADR: ExMA import fan-out < 10)
    - Read-only service: CORS allows GET only
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from donatechain.api.error_handlers import register_error_handlers
from donatechain.api.routes import health, transactions
from donatechain.config import get_settings
from donatechain.infrastructure.observability import setup_logging
from donatechain.schemas.transactions import ServiceInfo

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    logger.info("DonateChain mirror API started",
        extra={"chain_id": settings.required_chain_id})
    yield
    logger.info("DonateChain mirror API shutting down")


app = FastAPI(
    title="DonateChain Mirror API", version=VERSION, lifespan=lifespan,
)

# CORS: configured from settings, not hardcoded
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
    allow_credentials=True,
)

# Routes: explicit registration (ExMA: no convention-over-config)
app.include_router(health.router)
app.include_router(transactions.router)

register_error_handlers(app)


@app.get("/", response_model=ServiceInfo)
async def service_info():
    """Service banner listing the public endpoints."""
    return ServiceInfo(
        message="DonateChain ledger mirror API",
        version=VERSION,
        endpoints={
            "transactions": "/api/transactions",
            "health": "/api/v1/health/",
        },
    )
