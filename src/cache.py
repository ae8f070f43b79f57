"""Redis cache helpers for listing enumerations."""

import hashlib
import json
from typing import Any, cast

from redis.asyncio import Redis

from src.config import get_settings

settings = get_settings()

CATEGORY_COUNTS = "categories"
CAPITAL_RANGE_COUNTS = "capital-ranges"


def build_cache_key(name: str, **params: Any) -> str:
    data = json.dumps(params, sort_keys=True, default=str)
    hash_val = hashlib.md5(data.encode()).hexdigest()[:16]
    return f"listings:{name}:{hash_val}"


def enumeration_cache_keys() -> list[str]:
    """Keys invalidated by any listing write."""

    return [build_cache_key(CATEGORY_COUNTS), build_cache_key(CAPITAL_RANGE_COUNTS)]


async def cache_get(key: str) -> str | None:
    client = Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    try:
        value = await client.get(key)
        return cast(str, value) if value else None
    finally:
        await client.aclose()


async def cache_set(key: str, value: Any, ttl_seconds: int) -> None:
    json_value = json.dumps(value)
    client = Redis.from_url(settings.redis_url, encoding="utf-8")
    try:
        await client.set(key, json_value, ex=ttl_seconds)
    finally:
        await client.aclose()


async def cache_delete(*keys: str) -> None:
    if not keys:
        return
    client = Redis.from_url(settings.redis_url, encoding="utf-8")
    try:
        await client.delete(*keys)
    finally:
        await client.aclose()
