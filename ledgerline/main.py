"""
FastAPI application entry point.

Configures the application with routes, middleware, and settings.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

# Initialize Sentry for error tracking (must be done early)
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from ledgerline.api.routes import auth, organization, transactions
from ledgerline.config import get_settings
from ledgerline.database import init_db
from ledgerline.exceptions import LedgerlineError, ValidationError
from ledgerline.extraction.bedrock import get_bedrock_extractor
from ledgerline.middleware.logging import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    add_correlation_id_processor,
    redact_sensitive_data,
    redact_sensitive_processor,
)
from ledgerline.middleware.rate_limit import limiter, rate_limit_exceeded_handler

settings = get_settings()


def _filter_sensitive_data(event: dict, hint: dict) -> dict:
    """Filter sensitive data from Sentry events before sending."""
    request_data = event.get("request", {}).get("data")
    if isinstance(request_data, dict):
        event["request"]["data"] = redact_sensitive_data(request_data)
    if "extra" in event:
        event["extra"] = redact_sensitive_data(event["extra"])
    return event


if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=settings.app_version,
        traces_sample_rate=0.1,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoggingIntegration(level=None, event_level="ERROR"),
        ],
        # Don't send PII by default
        send_default_pii=False,
        before_send=_filter_sensitive_data,
    )


# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        add_correlation_id_processor,
        redact_sensitive_processor,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

# Endpoints whose malformed input is reported as 400 instead of 422
VALIDATION_AS_BAD_REQUEST_PREFIX = "/api/v1/transactions"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize the database on startup and log shutdown."""
    logger.info("ledgerline_starting", debug=settings.debug, environment=settings.environment)

    if settings.sentry_dsn:
        logger.info("sentry_enabled", environment=settings.environment)
    else:
        logger.warning("sentry_not_configured")

    if not settings.bedrock_configured:
        logger.warning("bedrock_not_configured", fallback="regex")

    init_db()

    logger.info("ledgerline_started")
    yield
    logger.info("ledgerline_shutdown")


app = FastAPI(
    title="Ledgerline API",
    description="""
## Bank Statement Transaction Extraction API

Ledgerline turns free-text bank statement fragments into structured,
organization-scoped transactions.

### Key Features

- **Extraction**: AI extraction via Claude on AWS Bedrock with a rule-based fallback
- **Confidence**: every transaction carries a confidence score in [0, 1]
- **Organizations**: multi-tenant data isolation with owner, admin and member roles
- **Pagination**: cursor-based, newest first

### Authentication

Protected endpoints require a valid JWT token in the Authorization header.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Authentication", "description": "User authentication and token management"},
        {"name": "Organizations", "description": "Organizations and membership"},
        {"name": "Transactions", "description": "Transaction extraction and listing"},
        {"name": "Health", "description": "Health checks"},
    ],
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Correlation-ID"],
    expose_headers=["X-Correlation-ID", "Retry-After"],
)

# Order matters: correlation ID first
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(organization.router, prefix="/api/v1/organizations", tags=["Organizations"])
app.include_router(transactions.router, prefix="/api/v1/transactions", tags=["Transactions"])


# Global Exception Handlers

@app.exception_handler(LedgerlineError)
async def ledgerline_exception_handler(request: Request, exc: LedgerlineError):
    """Handle all Ledgerline custom exceptions."""
    logger.error(
        "ledgerline_error",
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details,
        path=str(request.url.path),
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed transaction requests as 400 ValidationError."""
    if not request.url.path.startswith(VALIDATION_AS_BAD_REQUEST_PREFIX):
        return await request_validation_exception_handler(request, exc)

    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())[1:]),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return await ledgerline_exception_handler(request, ValidationError(errors=errors))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with consistent format."""
    sentry_sdk.capture_exception(exc)

    logger.exception(
        "unhandled_error",
        error_type=type(exc).__name__,
        message=str(exc),
        path=str(request.url.path),
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "error_code": "LL-999",
            "message": "An unexpected error occurred. Please try again.",
            "details": {"error_type": type(exc).__name__} if settings.debug else {},
        },
    )


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "aiConfigured": get_bedrock_extractor().is_configured(),
    }
