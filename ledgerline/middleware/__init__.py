"""
Middleware module initialization.
"""
from ledgerline.middleware.logging import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    get_correlation_id,
    redact_sensitive_data,
    log_performance,
    add_correlation_id_processor,
    redact_sensitive_processor,
)
from ledgerline.middleware.rate_limit import (
    limiter,
    rate_limit_exceeded_handler,
    extraction_rate_limit,
)

__all__ = [
    "CorrelationIdMiddleware",
    "RequestLoggingMiddleware",
    "get_correlation_id",
    "redact_sensitive_data",
    "log_performance",
    "add_correlation_id_processor",
    "redact_sensitive_processor",
    "limiter",
    "rate_limit_exceeded_handler",
    "extraction_rate_limit",
]
