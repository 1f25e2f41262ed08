"""In-memory cache module for report results.

Reports only read the cleaned set, so their results stay valid until the
next load or cleaning pass; both of those clear the cache.
"""
import hashlib
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Callable, Optional, ParamSpec, TypeVar

from retail_api.settings import settings

P = ParamSpec("P")
T = TypeVar("T")

_cache: dict[str, dict] = {}
_cache_stats = {"hits": 0, "misses": 0}

_MAX_KEY_LENGTH = 200


def _make_cache_key(prefix: str, *args, **kwargs) -> str:
    """Build a stable key from a prefix and the call arguments."""
    key_parts = [prefix]
    key_parts.extend("None" if arg is None else str(arg) for arg in args)
    key_parts.extend(f"{k}={v}" for k, v in sorted(kwargs.items()))
    raw_key = ":".join(key_parts)

    if len(raw_key) > _MAX_KEY_LENGTH:
        return f"{prefix}:{hashlib.md5(raw_key.encode()).hexdigest()}"
    return raw_key


def get_cache_stats() -> dict:
    """Return cache statistics for monitoring."""
    total = _cache_stats["hits"] + _cache_stats["misses"]
    hit_rate = (_cache_stats["hits"] / total * 100) if total > 0 else 0.0
    return {
        "entries": len(_cache),
        "keys": sorted(_cache),
        "hits": _cache_stats["hits"],
        "misses": _cache_stats["misses"],
        "hit_rate": round(hit_rate, 2),
    }


def get_cached(key: str) -> Optional[Any]:
    """Get a value from cache if not expired."""
    entry = _cache.get(key)
    if entry is None:
        _cache_stats["misses"] += 1
        return None

    expires_at = entry["expires_at"]
    if expires_at and datetime.now(timezone.utc) > expires_at:
        del _cache[key]
        _cache_stats["misses"] += 1
        return None

    _cache_stats["hits"] += 1
    return entry["value"]


def set_cached(key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
    """Store a value; a falsy TTL keeps it until the cache is cleared."""
    expires_at = None
    if ttl_seconds:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
    _cache[key] = {"value": value, "expires_at": expires_at}


def clear_cache(prefix: Optional[str] = None) -> int:
    """Clear cache entries. If prefix given, only clear matching keys."""
    if prefix is None:
        count = len(_cache)
        _cache.clear()
        _cache_stats.update(hits=0, misses=0)
        return count

    keys_to_delete = [k for k in _cache if k.startswith(prefix)]
    for key in keys_to_delete:
        del _cache[key]
    return len(keys_to_delete)


def cached(prefix: str, ttl_seconds: Optional[int] = None):
    """
    Decorator for caching async report results.

    The first positional argument (the db session) and a ``db`` keyword are
    left out of the key. ``ttl_seconds`` defaults to settings.CACHE_TTL_SECONDS.

    Usage:
        @cached("totals_by_category")
        async def totals_by_category(db):
            ...
    """
    ttl = settings.CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            cache_args = args[1:] if args else ()
            cache_kwargs = {k: v for k, v in kwargs.items() if k != "db"}
            key = _make_cache_key(prefix, *cache_args, **cache_kwargs)

            cached_value = get_cached(key)
            if cached_value is not None:
                return cached_value

            result = await func(*args, **kwargs)
            set_cached(key, result, ttl)
            return result

        return wrapper
    return decorator
