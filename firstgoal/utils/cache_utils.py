"""
Cache utilities for the First-Goal Pick'em application

ResourceCache is a process-local time-to-live cache keyed by logical
resource name ("games", "players", "leaderboard:10"), built on a
cachetools TLRUCache driven by the application clock. Each entry carries its
own TTL, expired entries are evicted lazily on the next access, and values
are stored as-is, so a hit returns the very object that was cached.
"""

import functools
import logging
import threading
from collections import namedtuple
from datetime import timedelta

from cachetools import TLRUCache

from firstgoal.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)

_Entry = namedtuple("_Entry", ["value", "ttl"])


def _expires_at(key, entry, now):
    return now + timedelta(seconds=entry.ttl)


class ResourceCache:
    """Time-to-live cache shared by every read path in the process"""

    def __init__(self, clock=None, default_ttl=300, maxsize=1024):
        self.default_ttl = default_ttl
        self._entries = TLRUCache(
            maxsize=maxsize, ttu=_expires_at, timer=clock or get_utc_time
        )
        # cachetools caches are not thread-safe
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key):
        """Return the cached value, or None if absent or older than its TTL"""
        with self._lock:
            self._entries.expire()
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            self.hits += 1
            return entry.value

    def set(self, key, value, ttl=None):
        with self._lock:
            self._entries[key] = _Entry(value, self.default_ttl if ttl is None else ttl)

    def invalidate(self, key=None):
        """Drop one key, or everything when key is None"""
        with self._lock:
            if key is None:
                self._entries.clear()
                logger.debug("Cache cleared")
            else:
                self._entries.pop(key, None)
                logger.debug(f"Cache invalidated for key: {key}")

    def invalidate_prefix(self, prefix):
        """Drop every key starting with prefix ("leaderboard" drops all limits)"""
        with self._lock:
            for key in [k for k in self._entries.keys() if k.startswith(prefix)]:
                self._entries.pop(key, None)
        logger.debug(f"Cache invalidated for prefix: {prefix}")

    def __contains__(self, key):
        # Membership leaves the hit/miss counters and the entries untouched
        with self._lock:
            return key in self._entries

    def get_stats(self):
        with self._lock:
            self._entries.expire()
            return {
                "entries": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "default_ttl": self.default_ttl,
            }


def cached_query(key_prefix, ttl_attr):
    """
    Decorator for service methods whose results live in the resource cache.

    The owning object supplies ``cache`` (a ResourceCache) and the TTL under
    ``ttl_attr``. Positional arguments become part of the key. Passing
    ``force_refresh=True`` bypasses the lookup and overwrites the entry.

    Args:
        key_prefix: logical resource name, also the invalidation prefix
        ttl_attr: attribute on the service holding the TTL in seconds
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(self, *args, force_refresh=False):
            cache_key = ":".join([key_prefix, *(str(arg) for arg in args)])

            if not force_refresh:
                result = self.cache.get(cache_key)
                if result is not None:
                    logger.debug(f"Query cache hit: {cache_key}")
                    return result

            result = f(self, *args)
            self.cache.set(cache_key, result, ttl=getattr(self, ttl_attr))
            logger.debug(f"Query cache set: {cache_key}")
            return result

        return wrapped

    return decorator
