import asyncio
import contextlib
import json
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

import redis.asyncio as redis
from loguru import logger
from pydantic import ValidationError

from moodwatch.core.config import settings
from moodwatch.core.constants import CACHE_COLLECTION, CACHE_KEY_SEPARATOR, CACHE_SCHEMA_VERSION
from moodwatch.core.exceptions import CacheUnavailableError
from moodwatch.models.cache import CacheEntry, CacheStats
from moodwatch.models.content import ContentItem
from moodwatch.models.discovery import DiscoveryFilters

ClientFactory = Callable[[], redis.Redis | Awaitable[redis.Redis]]

_STORE_ERRORS = (redis.RedisError, OSError)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _default_client() -> redis.Redis:
    logger.info("Creating Redis client for ResultCache")
    return redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        encoding="utf-8",
        socket_connect_timeout=5,
        socket_timeout=5,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
        health_check_interval=30,
        socket_keepalive=True,
    )


class ResultCache:
    """
    Redis-backed store of ranked discovery results, valid for a fixed TTL.

    Layout under the namespace (default ``DiscoveryCache``):

    * ``<ns>:meta:version``: schema version of the store
    * ``<ns>:results:<key>``: one hash per entry (data, timestamp, mood, filters)
    * ``<ns>:index:results:timestamp``: sorted set of keys scored by timestamp,
      scanned by the expiry sweep

    Staleness is evaluated when an entry is read and when the sweep runs.
    Concurrent writes to the same key are last-write-wins. Expired entries are
    removed under WATCH and only if their timestamp is still the stale one, so
    a ``set`` landing between the read and the delete is never lost.
    """

    def __init__(
        self,
        namespace: str | None = None,
        ttl_ms: int | None = None,
        client_factory: ClientFactory | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self.namespace = namespace or settings.CACHE_NAMESPACE
        self.ttl_ms = ttl_ms if ttl_ms is not None else settings.CACHE_TTL_MS
        self._client_factory = client_factory or _default_client
        self._clock = clock or _now_ms
        self._client: redis.Redis | None = None
        self._initialized = False
        self._sweep_task: asyncio.Task | None = None

    # Keys

    @property
    def _version_key(self) -> str:
        return f"{self.namespace}:meta:version"

    @property
    def _index_key(self) -> str:
        return f"{self.namespace}:index:{CACHE_COLLECTION}:timestamp"

    def _entry_key(self, key: str) -> str:
        return f"{self.namespace}:{CACHE_COLLECTION}:{key}"

    @staticmethod
    def derive_key(mood: str, filters: DiscoveryFilters | Mapping[str, Any] | None = None) -> str:
        """
        Canonical cache key for a mood and filter set.

        Platforms are sorted and omitted fields take their defaults, so
        logically equal filters always give the same key. Filters that cannot
        be read (e.g. an unknown content type) raise InvalidFiltersError.
        """
        filters = DiscoveryFilters.coerce(filters)
        filter_string = json.dumps(filters.canonical(), separators=(",", ":"))
        return f"{mood}{CACHE_KEY_SEPARATOR}{filter_string}"

    # Lifecycle

    async def _get_client(self) -> redis.Redis:
        if self._client is None:
            client = self._client_factory()
            if asyncio.iscoroutine(client):
                client = await client
            self._client = client
        return self._client

    async def init(self) -> None:
        """Open the store and check its schema version. Safe to call repeatedly."""
        if self._initialized:
            return
        try:
            client = await self._get_client()
            await client.ping()
            version = await client.get(self._version_key)
            if version is None:
                await client.set(self._version_key, CACHE_SCHEMA_VERSION)
            elif str(version) != str(CACHE_SCHEMA_VERSION):
                logger.warning(
                    f"Result cache schema version {version} does not match {CACHE_SCHEMA_VERSION}; dropping entries"
                )
                await self._drop_entries(client)
                await client.set(self._version_key, CACHE_SCHEMA_VERSION)
        except (*_STORE_ERRORS, ValueError) as exc:
            # ValueError: malformed REDIS_URL rejected while building the client
            logger.error(f"Failed to initialize result cache '{self.namespace}': {exc}")
            raise CacheUnavailableError("init", exc) from exc

        self._initialized = True
        logger.info(f"Result cache '{self.namespace}' ready (ttl={self.ttl_ms}ms)")

    async def _ready(self) -> redis.Redis:
        if not self._initialized:
            await self.init()
        return await self._get_client()

    def start_sweeper(self, interval_seconds: float | None = None) -> asyncio.Task:
        """Start the periodic expiry sweep as a background task on the running loop."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return self._sweep_task
        interval = interval_seconds if interval_seconds is not None else settings.CACHE_SWEEP_INTERVAL_SECONDS
        self._sweep_task = asyncio.create_task(self._sweep_loop(interval))
        logger.info(f"Result cache sweeper started (every {interval}s)")
        return self._sweep_task

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sweep_expired()
            except CacheUnavailableError as exc:
                logger.warning(f"Expired cache sweep failed: {exc}")
            except Exception as exc:
                logger.exception(f"Unexpected error in cache sweep: {exc}")

    async def shutdown(self) -> None:
        """Stop the sweeper and close the Redis client."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None

        if self._client is not None:
            try:
                await self._client.aclose()
                logger.info("ResultCache client closed")
            except Exception as exc:
                logger.warning(f"Failed to close ResultCache client: {exc}")
            finally:
                self._client = None
                self._initialized = False

    # Operations

    async def get(self, key: str) -> list[ContentItem] | None:
        """Cached payload for ``key``, or None on a miss. Expired entries are deleted."""
        client = await self._ready()
        try:
            raw = await client.hgetall(self._entry_key(key))
        except _STORE_ERRORS as exc:
            logger.error(f"Result cache GET failed for {key}: {exc}")
            raise CacheUnavailableError("get", exc) from exc

        if not raw:
            return None

        entry = self._decode_entry(key, raw)
        if entry is None:
            await self._discard(key)
            return None

        age = self._clock() - entry.timestamp
        if age > self.ttl_ms:
            logger.info(f"Cache expired for: {key}")
            try:
                await self._delete_if_unchanged(client, key, entry.timestamp)
            except _STORE_ERRORS as exc:
                # The sweep removes it later
                logger.warning(f"Failed to delete stale cache entry {key}: {exc}")
            return None

        logger.debug(f"Cache hit: {key} ({round(age / 1000)}s old)")
        return entry.data

    async def set(
        self,
        key: str,
        payload: Sequence[ContentItem],
        mood: str | None = None,
        filters: DiscoveryFilters | Mapping[str, Any] | None = None,
    ) -> None:
        """Replace the entry for ``key`` with a fresh timestamp."""
        client = await self._ready()
        timestamp = self._clock()
        mapping: dict[str, Any] = {
            "key": key,
            "data": json.dumps([item.model_dump(mode="json") for item in payload]),
            "timestamp": timestamp,
        }
        if mood is not None:
            mapping["mood"] = mood
        if filters is not None:
            snapshot = filters.canonical() if isinstance(filters, DiscoveryFilters) else dict(filters)
            mapping["filters"] = json.dumps(snapshot)

        entry_key = self._entry_key(key)
        try:
            async with client.pipeline(transaction=True) as pipe:
                pipe.delete(entry_key)
                pipe.hset(entry_key, mapping=mapping)
                pipe.zadd(self._index_key, {key: timestamp})
                await pipe.execute()
        except _STORE_ERRORS as exc:
            logger.error(f"Result cache SET failed for {key}: {exc}")
            raise CacheUnavailableError("set", exc) from exc

        logger.debug(f"Cached results: {key} ({len(payload)} items)")

    async def delete(self, key: str) -> None:
        client = await self._ready()
        try:
            async with client.pipeline(transaction=True) as pipe:
                pipe.delete(self._entry_key(key))
                pipe.zrem(self._index_key, key)
                await pipe.execute()
        except _STORE_ERRORS as exc:
            logger.error(f"Result cache DELETE failed for {key}: {exc}")
            raise CacheUnavailableError("delete", exc) from exc

    async def clear(self) -> int:
        """Remove every entry. Returns the number of entries deleted."""
        client = await self._ready()
        try:
            deleted = await self._drop_entries(client)
        except _STORE_ERRORS as exc:
            logger.error(f"Result cache CLEAR failed: {exc}")
            raise CacheUnavailableError("clear", exc) from exc
        logger.info(f"Result cache cleared ({deleted} entries)")
        return deleted

    async def sweep_expired(self) -> int:
        """Delete every entry written before ``now - ttl``. Returns the number removed."""
        client = await self._ready()
        cutoff = self._clock() - self.ttl_ms
        removed = 0
        try:
            expired = await client.zrangebyscore(self._index_key, "-inf", f"({cutoff}", withscores=True)
            for key, score in expired:
                logger.debug(f"Deleting expired cache: {key}")
                if await self._delete_if_unchanged(client, key, int(score)):
                    removed += 1
        except _STORE_ERRORS as exc:
            logger.error(f"Result cache sweep failed: {exc}")
            raise CacheUnavailableError("sweep", exc) from exc

        if expired:
            logger.info(f"Swept {removed} expired cache entries")
        return removed

    async def stats(self) -> CacheStats:
        """Entry count, total cached items and age of the oldest entry."""
        client = await self._ready()
        try:
            indexed = await client.zrange(self._index_key, 0, -1, withscores=True)
            async with client.pipeline(transaction=False) as pipe:
                for key, _ in indexed:
                    pipe.hget(self._entry_key(key), "data")
                payloads = await pipe.execute() if indexed else []
        except _STORE_ERRORS as exc:
            logger.error(f"Result cache STATS failed: {exc}")
            raise CacheUnavailableError("stats", exc) from exc

        now = self._clock()
        count = 0
        total_size = 0
        oldest_timestamp: int | None = None
        for (_key, score), data in zip(indexed, payloads):
            if data is None:
                continue
            count += 1
            try:
                total_size += len(json.loads(data))
            except (json.JSONDecodeError, TypeError):
                pass
            if oldest_timestamp is None or score < oldest_timestamp:
                oldest_timestamp = int(score)

        oldest_age = now - oldest_timestamp if oldest_timestamp is not None else 0
        return CacheStats(count=count, total_size=total_size, oldest_age_ms=oldest_age)

    # Helpers

    async def _discard(self, key: str) -> None:
        try:
            await self.delete(key)
        except CacheUnavailableError as exc:
            # The sweep removes it later
            logger.warning(f"Failed to delete stale cache entry {key}: {exc}")

    async def _delete_if_unchanged(self, client: redis.Redis, key: str, timestamp: int) -> bool:
        """
        Delete ``key`` only if it still carries ``timestamp``.

        Returns True when an entry was removed. A concurrent rewrite, either
        seen before MULTI or flagged by WATCH, leaves the entry in place.
        """
        entry_key = self._entry_key(key)
        async with client.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(entry_key)
                current = await pipe.hget(entry_key, "timestamp")
                if current is not None and current != str(timestamp):
                    await pipe.unwatch()
                    return False
                pipe.multi()
                pipe.delete(entry_key)
                pipe.zrem(self._index_key, key)
                deleted, _ = await pipe.execute()
            except redis.WatchError:
                logger.debug(f"Cache entry {key} rewritten during expiry, keeping it")
                return False
        return bool(deleted)

    async def _drop_entries(self, client: redis.Redis) -> int:
        deleted = 0
        batch: list[str] = []
        async for entry_key in client.scan_iter(match=f"{self.namespace}:{CACHE_COLLECTION}:*", count=500):
            batch.append(entry_key)
            if len(batch) >= 500:
                deleted += await client.delete(*batch)
                batch = []
        if batch:
            deleted += await client.delete(*batch)
        await client.delete(self._index_key)
        return deleted

    def _decode_entry(self, key: str, raw: dict[str, str]) -> CacheEntry | None:
        try:
            return CacheEntry(
                key=raw.get("key", key),
                data=json.loads(raw.get("data") or "[]"),
                timestamp=int(raw["timestamp"]),
                mood=raw.get("mood"),
                filters=json.loads(raw["filters"]) if raw.get("filters") else None,
            )
        except (KeyError, ValueError, TypeError, ValidationError) as exc:
            logger.warning(f"Discarding unreadable cache entry {key}: {exc}")
            return None
