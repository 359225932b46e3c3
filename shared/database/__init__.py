"""
Database Module
===============

Storage clients used by the balance proof service.

Clients:
- Redis (durable key-pair store)

Usage:
    from shared.database import RedisClient

    client = RedisClient.get_client()
"""

from shared.database.redis import RedisClient


__all__ = [
    "RedisClient",
]
