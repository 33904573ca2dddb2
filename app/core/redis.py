"""
Redis connection for the read cache.

Only derived catalog views are cached here (the category listing). Stock
counts are never cached: every reservation re-reads the product row.
"""
import json
from typing import Any

from fastapi import FastAPI
import redis.asyncio as redis
from loguru import logger
from redis.exceptions import RedisError

from app.core.metrics import (
    REDIS_OPS,
    REDIS_CONNECTION_STATUS,
    REDIS_CACHE_HITS_TOTAL,
    REDIS_CACHE_MISSES_TOTAL,
)
from env import REDIS_URL, SERVICE_NAME


redis_client: redis.Redis | None = None


def _count(operation: str, status: str) -> None:
    REDIS_OPS.labels(service=SERVICE_NAME, operation=operation, status=status).inc()


async def init_redis(app: FastAPI) -> None:
    global redis_client

    logger.info("Connecting read cache, url={url}", url=REDIS_URL)
    redis_client = redis.from_url(REDIS_URL, decode_responses=True)
    app.state.redis = redis_client
    REDIS_CONNECTION_STATUS.labels(service=SERVICE_NAME).set(1)
    _count("init", "success")


async def close_redis() -> None:
    global redis_client
    if redis_client is None:
        return
    await redis_client.aclose()
    redis_client = None
    REDIS_CONNECTION_STATUS.labels(service=SERVICE_NAME).set(0)
    _count("close", "success")
    logger.info("Read cache connection closed")


async def get_redis() -> redis.Redis:
    if redis_client is None:
        _count("get_client", "error")
        raise RuntimeError("Redis client is not initialized")
    return redis_client


async def cache_get_json(client: redis.Redis, key: str) -> Any | None:
    """Decoded cached value, or None on a miss."""
    try:
        raw = await client.get(key)
    except Exception:
        _count("get", "error")
        logger.exception("Cache GET failed for key={key}", key=key)
        raise
    _count("get", "success")

    if raw is None:
        REDIS_CACHE_MISSES_TOTAL.labels(service=SERVICE_NAME, cache_key=key).inc()
        return None
    REDIS_CACHE_HITS_TOTAL.labels(service=SERVICE_NAME, cache_key=key).inc()
    return json.loads(raw)


async def cache_set_json(client: redis.Redis, key: str, value: Any, ttl_seconds: int) -> None:
    try:
        await client.set(key, json.dumps(value), ex=ttl_seconds)
    except Exception:
        _count("set", "error")
        logger.exception("Cache SET failed for key={key}", key=key)
        raise
    _count("set", "success")


async def cache_delete(client: redis.Redis, key: str) -> bool:
    """
    Drops a cached view after a committed write. Failures are logged, not
    raised: the stale entry expires with its TTL.
    """
    try:
        deleted = await client.delete(key)
    except RedisError:
        _count("delete", "error")
        logger.exception("Cache DELETE failed for key={key}", key=key)
        return False
    _count("delete", "success" if deleted else "noop")
    logger.debug("Cache key {key} invalidated (deleted={deleted})", key=key, deleted=deleted)
    return bool(deleted)
