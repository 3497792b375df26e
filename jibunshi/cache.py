"""
cache.py — Redis caching layer for Jibunshi.

Namespace conventions:
  questions:{sha256(stage|name|age|photo)}  → generated question list   TTL 1h (3600s)

Design:
  - Uses redis.asyncio (async client, part of redis-py 5.x)
  - Pool created once in lifespan, stored on app.state.redis (None = cache disabled)
  - Helper functions take the client as a param — no module-level global state
  - Keys hash the normalized prompt inputs, so user names never appear in Redis keys
  - A Redis failure during a request is logged and treated as a miss
"""
import hashlib
import json
import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from jibunshi.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# TTL / key prefix constants
# ---------------------------------------------------------------------------
QUESTIONS_TTL: int = 3600   # 1 hour
QUESTIONS_PREFIX = "questions"


# ---------------------------------------------------------------------------
# Key builders
# ---------------------------------------------------------------------------

def make_questions_key(
    stage: str,
    user_name: Optional[str] = None,
    age: Optional[int] = None,
    photo_description: Optional[str] = None,
) -> str:
    """
    Build Redis key for a question-generation result.
    Inputs are stripped and lowercased before hashing to maximize hit rate.
    Key format: questions:{sha256hex}
    """
    parts = [
        stage.strip().lower(),
        (user_name or "").strip().lower(),
        "" if age is None else str(age),
        (photo_description or "").strip().lower(),
    ]
    digest = hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()
    return f"{QUESTIONS_PREFIX}:{digest}"


# ---------------------------------------------------------------------------
# Pool factory — called once in lifespan
# ---------------------------------------------------------------------------

async def create_redis_pool(url: Optional[str] = None) -> Optional[aioredis.Redis]:
    """
    Create an async Redis connection pool and verify it with PING.
    Returns None when no URL is configured or the server is unreachable;
    the application then runs without the question cache.
    """
    url = settings.redis_url if url is None else url
    if not url:
        logger.info("Redis disabled (REDIS_URL is empty)")
        return None

    client = aioredis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        logger.warning("Redis unreachable at startup, question cache disabled: %s", exc)
        await client.aclose()
        return None
    logger.info("Redis connection pool established")
    return client


# ---------------------------------------------------------------------------
# Question cache helpers
# ---------------------------------------------------------------------------

async def get_questions_cache(client: Optional[aioredis.Redis], key: str) -> Optional[dict]:
    """Returns the cached {stage, questions} dict or None on miss / disabled cache."""
    if client is None:
        return None
    try:
        raw = await client.get(key)
    except RedisError as exc:
        logger.warning("Redis GET failed key=%s: %s", key, exc)
        return None
    if raw is None:
        return None
    logger.info("Question cache hit key=%s", key)
    return json.loads(raw)


async def set_questions_cache(client: Optional[aioredis.Redis], key: str, response: dict) -> None:
    """Store a question-generation response with TTL 1h."""
    if client is None:
        return
    try:
        await client.setex(key, QUESTIONS_TTL, json.dumps(response, ensure_ascii=False))
    except RedisError as exc:
        logger.warning("Redis SETEX failed key=%s: %s", key, exc)
        return
    logger.info("Questions cached key=%s ttl=%ds", key, QUESTIONS_TTL)
