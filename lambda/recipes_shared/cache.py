"""
In-process TTL cache for read paths.

Entries expire two ways that agree on the same boundary: a read at or after
`created_at + ttl` is a miss, and a timer scheduled for `ttl` removes the
entry. The passive check is the one correctness depends on; a late timer
can never cause a stale read.

The cache is local to one process (one warm Lambda container). Every
mutation path invalidates the keys and namespaces it can affect before it
reports success.
"""

import copy
import json
import threading
import time
from typing import Dict, Any, Optional, Callable, Iterable


_MISS = object()

# Logical cache namespaces
RECIPE = 'recipe'
PUBLIC_RECIPES = 'public_recipes'
COLLECTION = 'collection'
SEARCH = 'search'

# Seconds
DEFAULT_TTLS = {
    RECIPE: 300.0,
    PUBLIC_RECIPES: 180.0,
    COLLECTION: 300.0,
    SEARCH: 120.0,
}


class _Entry:
    __slots__ = ('value', 'created_at', 'ttl', 'timer')

    def __init__(self, value: Any, created_at: float, ttl: float):
        self.value = value
        self.created_at = created_at
        self.ttl = ttl
        self.timer: Any = None


class TTLCache:
    """
    Thread-safe key/value cache with per-entry TTL.

    Keys are strings of the form '<namespace>:<rest>' so `clear(namespace)`
    can drop one logical cache without touching the others.

    Usage:
        cache = TTLCache()
        recipe = cache.get_or_set('recipe:01H...', lambda: load(recipe_id), ttl=300)
        cache.invalidate('recipe:01H...')
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: Callable[..., Any] = threading.Timer,
        default_ttl: float = 300.0
    ):
        """
        Initialize the cache.

        Args:
            clock: Monotonic time source in seconds
            timer_factory: threading.Timer compatible factory for scheduled eviction
            default_ttl: TTL in seconds used when a call does not pass one
        """
        self._clock = clock
        self._timer_factory = timer_factory
        self.default_ttl = default_ttl
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def _is_expired(self, entry: _Entry, now: float) -> bool:
        return now - entry.created_at >= entry.ttl

    def _lookup(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return _MISS

            if self._is_expired(entry, self._clock()):
                self._remove(key, entry)
                self._misses += 1
                return _MISS

            self._hits += 1
            return entry.value

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or `default` when absent or expired."""
        value = self._lookup(key)
        return default if value is _MISS else value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Store a value, replacing any existing entry and its timer.

        Args:
            key: Namespaced cache key
            value: Value to cache (None is a valid value)
            ttl: Seconds until expiry; the cache default when omitted
        """
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError('TTL must be positive')

        with self._lock:
            previous = self._entries.get(key)
            if previous is not None:
                self._cancel(previous)

            entry = _Entry(value, self._clock(), ttl)
            self._entries[key] = entry
            self._schedule(key, entry, ttl)

    def get_or_set(
        self,
        key: str,
        fetch: Callable[[], Any],
        ttl: Optional[float] = None
    ) -> Any:
        """
        Return the cached value or fetch, cache and return a fresh one.

        The fetch runs outside the lock. If it raises, nothing is cached and
        the exception propagates to the caller.

        Args:
            key: Namespaced cache key
            fetch: Zero-argument callable producing the value
            ttl: Seconds until expiry; the cache default when omitted

        Returns:
            Cached or freshly fetched value
        """
        value = self._lookup(key)
        if value is not _MISS:
            return value

        value = fetch()
        self.set(key, value, ttl)
        return value

    def invalidate(self, key: str) -> bool:
        """
        Remove a single entry and cancel its pending eviction.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            self._remove(key, entry)
            return True

    def clear(self, namespace: Optional[str] = None) -> int:
        """
        Remove every entry in a namespace, or every entry when namespace is None.

        Returns:
            Number of entries removed
        """
        with self._lock:
            if namespace is None:
                keys = list(self._entries)
            else:
                prefix = f'{namespace}:'
                keys = [key for key in self._entries if key.startswith(prefix)]

            for key in keys:
                self._remove(key, self._entries[key])
            return len(keys)

    def keys(self, namespace: Optional[str] = None) -> Iterable[str]:
        with self._lock:
            if namespace is None:
                return list(self._entries)
            prefix = f'{namespace}:'
            return [key for key in self._entries if key.startswith(prefix)]

    def stats(self) -> Dict[str, Any]:
        """Entry count and hit/miss counters since creation."""
        with self._lock:
            return {
                'size': len(self._entries),
                'hits': self._hits,
                'misses': self._misses,
            }

    def _schedule(self, key: str, entry: _Entry, delay: float) -> None:
        timer = self._timer_factory(delay, self._evict, args=(key, entry))
        timer.daemon = True
        entry.timer = timer
        timer.start()

    def _cancel(self, entry: _Entry) -> None:
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None

    def _remove(self, key: str, entry: _Entry) -> None:
        self._cancel(entry)
        if self._entries.get(key) is entry:
            del self._entries[key]

    def _evict(self, key: str, entry: _Entry) -> None:
        """Timer callback; only ever touches the entry it was scheduled for."""
        with self._lock:
            if self._entries.get(key) is not entry:
                return

            now = self._clock()
            if self._is_expired(entry, now):
                entry.timer = None
                del self._entries[key]
            else:
                # Fired early; wait out the remainder
                self._schedule(key, entry, entry.created_at + entry.ttl - now)


def cache_key(namespace: str, *parts: Any) -> str:
    """
    Build a namespaced key. Non-string parts are JSON-encoded with sorted keys
    so equal query parameters always map to the same key.
    """
    encoded = [
        part if isinstance(part, str) else json.dumps(part, sort_keys=True, default=str)
        for part in parts
    ]
    return ':'.join([namespace] + encoded)


class CacheService:
    """
    The logical caches used by the repositories, sharing one TTLCache.

    Each namespace has its own TTL. Invalidation rules:
      - a recipe write drops recipe:<id> and clears public_recipes and search
      - a collection write drops collection:<id> and clears public_recipes

    Values are handed out as deep copies, so a caller that edits a record
    it was given never changes what the next reader sees.
    """

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        ttls: Optional[Dict[str, float]] = None
    ):
        self.cache = cache if cache is not None else TTLCache()
        self.ttls = dict(DEFAULT_TTLS)
        if ttls:
            self.ttls.update(ttls)

    def _get_or_set(self, key: str, fetch: Callable[[], Any], ttl: float) -> Any:
        return copy.deepcopy(self.cache.get_or_set(key, fetch, ttl))

    def get_recipe(self, recipe_id: str, fetch: Callable[[], Any]) -> Any:
        return self._get_or_set(cache_key(RECIPE, recipe_id), fetch, self.ttls[RECIPE])

    def cached_recipes(self, recipe_ids: Iterable[str]) -> Dict[str, Any]:
        """
        Recipes already cached, by id.

        Ids with no live entry are left out; an id cached as missing maps
        to None.
        """
        found = {}
        for recipe_id in recipe_ids:
            value = self.cache.get(cache_key(RECIPE, recipe_id), _MISS)
            if value is not _MISS:
                found[recipe_id] = copy.deepcopy(value)
        return found

    def store_recipe(self, recipe_id: str, recipe: Any) -> None:
        self.cache.set(cache_key(RECIPE, recipe_id), copy.deepcopy(recipe), self.ttls[RECIPE])

    def get_public_recipes(self, limit: int, cursor: Optional[str], fetch: Callable[[], Any]) -> Any:
        key = cache_key(PUBLIC_RECIPES, str(limit), cursor or '')
        return self._get_or_set(key, fetch, self.ttls[PUBLIC_RECIPES])

    def get_collection(self, collection_id: str, fetch: Callable[[], Any]) -> Any:
        return self._get_or_set(cache_key(COLLECTION, collection_id), fetch, self.ttls[COLLECTION])

    def get_search_results(self, params: Dict[str, Any], fetch: Callable[[], Any]) -> Any:
        return self._get_or_set(cache_key(SEARCH, params), fetch, self.ttls[SEARCH])

    def invalidate_recipe(self, recipe_id: str) -> None:
        self.cache.invalidate(cache_key(RECIPE, recipe_id))
        self.cache.clear(PUBLIC_RECIPES)
        self.cache.clear(SEARCH)

    def invalidate_collection(self, collection_id: str) -> None:
        self.cache.invalidate(cache_key(COLLECTION, collection_id))
        self.cache.clear(PUBLIC_RECIPES)

    def invalidate_listings(self) -> None:
        """Drop every cached listing after a bulk write."""
        self.cache.clear(PUBLIC_RECIPES)
        self.cache.clear(SEARCH)

    def clear_all(self) -> None:
        self.cache.clear()

    def stats(self) -> Dict[str, Any]:
        stats = self.cache.stats()
        stats['namespaces'] = {
            namespace: len(list(self.cache.keys(namespace)))
            for namespace in self.ttls
        }
        return stats


def create_cache_service(config: Dict[str, Any]) -> CacheService:
    """Build a CacheService using the TTLs from load_config()."""
    return CacheService(ttls={
        RECIPE: config.get('cache_recipe_ttl_seconds', DEFAULT_TTLS[RECIPE]),
        PUBLIC_RECIPES: config.get('cache_public_recipes_ttl_seconds', DEFAULT_TTLS[PUBLIC_RECIPES]),
        COLLECTION: config.get('cache_collection_ttl_seconds', DEFAULT_TTLS[COLLECTION]),
        SEARCH: config.get('cache_search_ttl_seconds', DEFAULT_TTLS[SEARCH]),
    })
