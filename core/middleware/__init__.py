"""
Core middleware package.

- Error handling with sensitive data sanitization
- Structured request logging with PII masking
- Redis-based sliding window rate limiting
"""

from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    setup_logging,
    get_logger,
)

from core.middleware.rate_limiting import (
    RateLimitMiddleware,
    RateLimitRule,
    RateLimitStrategy,
    RateLimitWindow,
    SlidingWindowRateLimiter,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "setup_error_handlers",
    "sanitize_error_message",
    "StructuredLoggingMiddleware",
    "setup_logging",
    "get_logger",
    "RateLimitMiddleware",
    "RateLimitRule",
    "RateLimitStrategy",
    "RateLimitWindow",
    "SlidingWindowRateLimiter",
]
