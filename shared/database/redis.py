"""
Redis Client
============

Synchronous Redis client used to persist proof-system key pairs.

Key management runs inside worker threads (``asyncio.to_thread``), so the
blocking client is used rather than ``redis.asyncio``.

Version: 1.0.0
"""

import time
from typing import Any

import redis
from redis import Redis
from redis.exceptions import RedisError

from shared.config import settings
from shared.logging import get_logger


logger = get_logger(__name__)


class RedisClient:
    """
    Process-wide Redis client wrapper.

    Provides lazy connection creation and a health probe.
    """

    _client: Redis | None = None  # type: ignore[type-arg]

    @classmethod
    def get_client(cls) -> Redis:  # type: ignore[type-arg]
        """Get or create the client."""
        if cls._client is None:
            cls._client = redis.Redis.from_url(
                settings.redis.url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=10,
            )
            logger.info("redis_client_created", host=settings.redis.host)
        return cls._client

    @classmethod
    def close(cls) -> None:
        """Close the client and release all connections."""
        if cls._client is not None:
            cls._client.close()
            cls._client = None
            logger.info("redis_client_closed")

    @classmethod
    def health_check(cls) -> dict[str, Any]:
        """
        Check Redis health.

        Returns:
            dict with status and latency
        """
        try:
            start = time.perf_counter()
            pong = cls.get_client().ping()
            latency_ms = (time.perf_counter() - start) * 1000
            return {
                "status": "healthy" if pong else "unhealthy",
                "latency_ms": round(latency_ms, 2),
            }
        except RedisError as e:
            logger.error("redis_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e),
            }
