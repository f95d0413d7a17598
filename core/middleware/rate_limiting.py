"""
Redis-based rate limiting middleware.
Sliding window limits per user, per IP or per endpoint, with a tighter
budget for the oracle-backed matching endpoints.
"""

import asyncio
import logging
import time
import uuid
from typing import Callable, Optional, List, Dict, Any
from enum import Enum
from dataclasses import dataclass
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from core.security import subject_from_token

logger = logging.getLogger(__name__)


class RateLimitStrategy(str, Enum):
    """What a rate limit bucket is keyed on."""
    IP_ADDRESS = "ip"
    USER_ID = "user"
    ENDPOINT = "endpoint"


class RateLimitWindow(str, Enum):
    """Time window types for rate limiting."""
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"


WINDOW_SECONDS = {
    RateLimitWindow.SECOND: 1,
    RateLimitWindow.MINUTE: 60,
    RateLimitWindow.HOUR: 3600,
    RateLimitWindow.DAY: 86400,
}


@dataclass
class RateLimitRule:
    """Rate limit rule configuration."""
    strategy: RateLimitStrategy
    window: RateLimitWindow
    max_requests: int
    paths: Optional[List[str]] = None  # Path prefixes the rule applies to
    methods: Optional[List[str]] = None  # HTTP methods the rule applies to
    cost: int = 1  # Units consumed per request
    exempt_ips: Optional[List[str]] = None
    exempt_user_ids: Optional[List[str]] = None

    def applies_to(self, path: str, method: str) -> bool:
        if self.paths and not any(path.startswith(prefix) for prefix in self.paths):
            return False
        if self.methods and method not in self.methods:
            return False
        return True

    @property
    def window_seconds(self) -> int:
        return WINDOW_SECONDS[self.window]


class SlidingWindowRateLimiter:
    """
    Sliding window rate limiter over Redis sorted sets.

    Each request is a member scored by its timestamp; members older than
    the window are trimmed before counting.
    """

    def __init__(self, redis_client: Redis):
        self.redis = redis_client

    async def is_allowed(
        self,
        key: str,
        max_requests: int,
        window_seconds: int,
        cost: int = 1,
    ) -> tuple[bool, Dict[str, Any]]:
        """
        Check if request is allowed under rate limit.

        Args:
            key: Bucket key
            max_requests: Maximum units allowed in window
            window_seconds: Time window in seconds
            cost: Units this request consumes

        Returns:
            Tuple of (is_allowed, metadata) where metadata holds
            limit, remaining, reset and retry_after
        """
        now = time.time()
        window_start = now - window_seconds
        members = {f"{now}:{uuid.uuid4().hex[:8]}": now for _ in range(cost)}

        try:
            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, window_start)
            pipe.zcard(key)
            pipe.zadd(key, members)
            pipe.expire(key, window_seconds + 60)
            results = await pipe.execute()

            # Count before this request was added
            current_count = results[1]
            allowed = (current_count + cost) <= max_requests

            retry_after = 0
            if not allowed:
                oldest = await self.redis.zrange(key, 0, 0, withscores=True)
                if oldest:
                    retry_after = int(oldest[0][1] + window_seconds - now)
                else:
                    retry_after = window_seconds
                await self.redis.zrem(key, *members.keys())

            return allowed, {
                'limit': max_requests,
                'remaining': max(0, max_requests - current_count - cost),
                'reset': int(now + window_seconds),
                'retry_after': max(0, retry_after),
            }

        except (RedisError, asyncio.TimeoutError) as e:
            # Fail open: a cache outage must not take the API down
            logger.error(f"Redis error in rate limiter: {e}")
            return True, {
                'limit': max_requests,
                'remaining': max_requests,
                'reset': int(now + window_seconds),
                'retry_after': 0,
                'error': 'redis_unavailable',
            }

    async def reset(self, key: str) -> bool:
        """Drop a bucket."""
        try:
            await self.redis.delete(key)
            return True
        except RedisError as e:
            logger.error(f"Failed to reset rate limit for {key}: {e}")
            return False


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies every matching rule to a request; the most restrictive result
    wins and is reported through X-RateLimit-* headers.
    """

    EXEMPT_PATHS = ('/health', '/ready', '/docs', '/openapi.json')

    def __init__(
        self,
        app: ASGIApp,
        redis_url: str,
        rules: Optional[List[RateLimitRule]] = None,
        key_prefix: str = "ratelimit",
        enable_headers: bool = True,
        redis_client: Optional[Redis] = None,
    ):
        super().__init__(app)
        self.redis_url = redis_url
        self.redis_client: Optional[Redis] = redis_client
        self.limiter: Optional[SlidingWindowRateLimiter] = (
            SlidingWindowRateLimiter(redis_client) if redis_client else None
        )
        self.rules = rules if rules is not None else self._default_rules()
        self.key_prefix = key_prefix
        self.enable_headers = enable_headers

    def _initialize(self):
        """Create the Redis client lazily; the connection opens on first command."""
        if self.limiter is None:
            self.redis_client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                health_check_interval=30,
            )
            self.limiter = SlidingWindowRateLimiter(self.redis_client)
            logger.info("Rate limiter initialized")

    def _default_rules(self) -> List[RateLimitRule]:
        return [
            RateLimitRule(
                strategy=RateLimitStrategy.USER_ID,
                window=RateLimitWindow.MINUTE,
                max_requests=100,
            ),
            RateLimitRule(
                strategy=RateLimitStrategy.USER_ID,
                window=RateLimitWindow.HOUR,
                max_requests=1000,
            ),
        ]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path.startswith(self.EXEMPT_PATHS):
            return await call_next(request)

        self._initialize()
        result = await self._check_rate_limits(request)

        if not result['allowed']:
            logger.warning(
                "Rate limit exceeded",
                extra={'path': request.url.path, 'retry_after': result['retry_after']},
            )
            response = JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    'error': {
                        'code': 'RATE_LIMIT_EXCEEDED',
                        'message': 'Too many requests. Please try again later.',
                        'path': request.url.path,
                        'method': request.method,
                        'retry_after': result['retry_after'],
                    }
                },
            )
            self._add_rate_limit_headers(response, result)
            return response

        response = await call_next(request)
        if self.enable_headers and result['limit']:
            self._add_rate_limit_headers(response, result)
        return response

    async def _check_rate_limits(self, request: Request) -> Dict[str, Any]:
        results = {
            'allowed': True,
            'limit': 0,
            'remaining': 0,
            'reset': 0,
            'retry_after': 0,
        }

        for rule in self.rules:
            if not rule.applies_to(request.url.path, request.method):
                continue
            if self._is_exempt(request, rule):
                continue

            allowed, metadata = await self.limiter.is_allowed(
                key=self._generate_key(request, rule),
                max_requests=rule.max_requests,
                window_seconds=rule.window_seconds,
                cost=rule.cost,
            )

            if not allowed:
                results['allowed'] = False
                results['retry_after'] = max(results['retry_after'], metadata['retry_after'])

            if results['limit'] == 0 or metadata['remaining'] < results['remaining']:
                results['limit'] = metadata['limit']
                results['remaining'] = metadata['remaining']
                results['reset'] = metadata['reset']

        return results

    def _is_exempt(self, request: Request, rule: RateLimitRule) -> bool:
        if rule.exempt_ips and self._get_client_ip(request) in rule.exempt_ips:
            return True
        if rule.exempt_user_ids:
            user_id = self._get_user_id(request)
            if user_id and user_id in rule.exempt_user_ids:
                return True
        return False

    def _generate_key(self, request: Request, rule: RateLimitRule) -> str:
        parts = [self.key_prefix, rule.strategy.value, rule.window.value]
        if rule.paths:
            parts.append(rule.paths[0])

        if rule.strategy == RateLimitStrategy.USER_ID:
            user_id = self._get_user_id(request)
            # Anonymous callers share a bucket per IP
            parts.append(user_id or f"ip:{self._get_client_ip(request)}")
        elif rule.strategy == RateLimitStrategy.ENDPOINT:
            parts.append(request.url.path)
        else:
            parts.append(self._get_client_ip(request))

        return ":".join(parts)

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get('x-forwarded-for')
        if forwarded_for:
            return forwarded_for.split(',')[0].strip()
        real_ip = request.headers.get('x-real-ip')
        if real_ip:
            return real_ip
        return request.client.host if request.client else 'unknown'

    def _get_user_id(self, request: Request) -> Optional[str]:
        """
        User id from the bearer token.

        Runs before route dependencies, so the token is verified here rather
        than read from request state; invalid tokens count as anonymous.
        """
        authorization = request.headers.get('authorization', '')
        scheme, _, token = authorization.partition(' ')
        if scheme.lower() != 'bearer' or not token:
            return None
        return subject_from_token(token)

    def _add_rate_limit_headers(self, response: Response, result: Dict[str, Any]):
        response.headers['X-RateLimit-Limit'] = str(result['limit'])
        response.headers['X-RateLimit-Remaining'] = str(result['remaining'])
        response.headers['X-RateLimit-Reset'] = str(result['reset'])
        if not result['allowed']:
            response.headers['Retry-After'] = str(result['retry_after'])

    async def close(self):
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.aclose()
            logger.info("Rate limiter closed")
