"""
FastAPI application initialization and configuration.
"""

from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as redis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from database.engine import init_db, close_db
from api.routes import health
from api.schemas.common import ErrorResponse
from api.routes.v1 import (
    agent_assignments,
    agents as agents_routes,
    assignments,
    matching,
    search,
)

# Import middleware components
from core.middleware import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    StructuredLoggingMiddleware,
    setup_logging,
    get_logger,
    RateLimitMiddleware,
    RateLimitRule,
    RateLimitStrategy,
    RateLimitWindow,
)

# Setup structured logging (do this first, before anything else)
setup_logging(
    log_level=settings.log_level,
    json_logs=settings.json_logs,
)

logger = get_logger(__name__)

rate_limit_redis: Optional[redis.Redis] = None
if settings.rate_limit_enabled:
    rate_limit_redis = redis.from_url(
        str(settings.redis_url),
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        health_check_interval=30,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.app_name} in {settings.app_env} environment")
    await init_db()

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")
    if rate_limit_redis is not None:
        await rate_limit_redis.aclose()
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Recruitment pipeline: agent scoping, candidate assignments, matching and search",
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Setup error handlers (before middleware)
setup_error_handlers(app)

# Add middleware (order matters - they execute in reverse order)
# 1. Error handling middleware (outermost - catches all errors)
app.add_middleware(
    ErrorHandlingMiddleware,
    debug=settings.debug,
)

# 2. Structured logging middleware (logs all requests/responses)
app.add_middleware(
    StructuredLoggingMiddleware,
    log_request_body=settings.log_request_body,
    log_response_body=settings.log_response_body,
    max_body_size=settings.log_max_body_size,
)

# 3. Rate limiting middleware
if rate_limit_redis is not None:
    rate_limit_rules = [
        # User-specific rate limits
        RateLimitRule(
            strategy=RateLimitStrategy.USER_ID,
            window=RateLimitWindow.MINUTE,
            max_requests=settings.rate_limit_per_minute,
        ),
        RateLimitRule(
            strategy=RateLimitStrategy.USER_ID,
            window=RateLimitWindow.HOUR,
            max_requests=settings.rate_limit_per_hour,
        ),
        # IP-based rate limits (backup for unauthenticated)
        RateLimitRule(
            strategy=RateLimitStrategy.IP_ADDRESS,
            window=RateLimitWindow.MINUTE,
            max_requests=settings.rate_limit_per_minute,
        ),
        # Scoring model calls are expensive
        RateLimitRule(
            strategy=RateLimitStrategy.USER_ID,
            window=RateLimitWindow.MINUTE,
            max_requests=settings.match_rate_limit_per_minute,
            paths=[f"{settings.api_v1_prefix}/match"],
            methods=["POST"],
        ),
    ]

    app.add_middleware(
        RateLimitMiddleware,
        redis_url=str(settings.redis_url),
        rules=rate_limit_rules,
        key_prefix="recruit:ratelimit",
        enable_headers=True,
        redis_client=rate_limit_redis,
    )

# 4. CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health check routes
app.include_router(health.router, tags=["Health"])

# API v1 routes
error_responses = {
    status: {"model": ErrorResponse} for status in (400, 401, 403, 404, 409, 422, 429)
}
for module in (assignments, agent_assignments, agents_routes, matching, search):
    app.include_router(
        module.router, prefix=settings.api_v1_prefix, responses=error_responses
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
