"""
Redis-backed rate limiting for the public booking endpoints.

Counters are fixed windows keyed by endpoint and client IP. When Redis is
unreachable requests are allowed (fail-open): availability and booking must keep
working without the limiter.
"""

import logging
import os
from typing import Optional

import redis
from fastapi import HTTPException, Request

from . import config

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Get or create the Redis client from REDIS_URL or REDIS_HOST/PORT/DB"""
    global redis_client

    if redis_client is None:
        redis_url = os.getenv("REDIS_URL")
        if redis_url:
            redis_client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
        else:
            redis_client = redis.Redis(
                host=os.getenv("REDIS_HOST", "localhost"),
                port=int(os.getenv("REDIS_PORT", "6379")),
                password=os.getenv("REDIS_PASSWORD"),
                db=int(os.getenv("REDIS_DB", "0")),
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
        redis_client.ping()
        logger.info("Redis connected for rate limiting")

    return redis_client


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def check_rate_limit(client: redis.Redis, key: str, limit: int, window_seconds: int) -> tuple[bool, int]:
    """Increment the window counter; returns (is_allowed, ttl_seconds)"""
    pipe = client.pipeline()
    pipe.incr(key)
    pipe.ttl(key)
    count, ttl = pipe.execute()
    if ttl is None or ttl < 0:
        client.expire(key, window_seconds)
        ttl = window_seconds
    return count <= limit, ttl


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str):
    """
    Build a FastAPI dependency enforcing ``limit`` requests per window per IP.

    Example:
        booking_limit = create_rate_limiter(limit=10, window_seconds=600, key_prefix="booking")

        @router.post("/appointments", dependencies=[Depends(booking_limit)])
    """

    async def rate_limiter(request: Request):
        if not config.RATE_LIMIT_ENABLED:
            return

        key = f"rate_limit:{key_prefix}:{client_ip(request)}"
        try:
            allowed, ttl = check_rate_limit(get_redis_client(), key, limit, window_seconds)
        except redis.RedisError as e:
            logger.warning(f"Rate limiting unavailable, allowing request: {e}")
            return

        if not allowed:
            logger.warning(f"Rate limit exceeded for {key}")
            raise HTTPException(
                status_code=429,
                detail={
                    "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                    "retry_after": ttl,
                },
                headers={"Retry-After": str(ttl)},
            )

    return rate_limiter
