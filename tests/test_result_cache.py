import asyncio

import pytest
import redis.asyncio as redis
from helpers import run

from moodwatch.core.constants import CACHE_TTL_MS
from moodwatch.core.exceptions import CacheUnavailableError, InvalidFiltersError, MoodwatchError
from moodwatch.models.discovery import DiscoveryFilters
from moodwatch.services.result_cache import ResultCache


class TestDeriveKey:
    def test_platform_order_does_not_matter(self):
        a = ResultCache.derive_key("happy", {"platforms": ["netflix", "hulu"], "minRating": 7})
        b = ResultCache.derive_key("happy", {"platforms": ["hulu", "netflix"], "minRating": 7})
        assert a == b

    def test_defaults_match_explicit_values(self):
        implicit = ResultCache.derive_key("tense", {})
        explicit = ResultCache.derive_key(
            "tense", {"platforms": [], "contentType": "all", "minRating": 5.0, "yearFrom": None, "yearTo": None}
        )
        assert implicit == explicit == ResultCache.derive_key("tense", None)

    def test_field_order_and_naming_do_not_matter(self):
        camel = ResultCache.derive_key("relaxed", {"yearTo": 2020, "contentType": "movie", "yearFrom": 2000})
        snake = ResultCache.derive_key("relaxed", {"content_type": "movie", "year_from": 2000, "year_to": 2020})
        model = ResultCache.derive_key("relaxed", DiscoveryFilters(content_type="movie", year_from=2000, year_to=2020))
        assert camel == snake == model

    def test_integer_and_float_ratings_agree(self):
        assert ResultCache.derive_key("happy", {"minRating": 7}) == ResultCache.derive_key("happy", {"minRating": 7.0})

    def test_distinct_inputs_give_distinct_keys(self):
        keys = {
            ResultCache.derive_key("happy", {}),
            ResultCache.derive_key("excited", {}),
            ResultCache.derive_key("happy", {"minRating": 7}),
            ResultCache.derive_key("happy", {"minRating": 0}),
            ResultCache.derive_key("happy", {"platforms": ["netflix"]}),
            ResultCache.derive_key("happy", {"contentType": "tv_show"}),
        }
        assert len(keys) == 6

    def test_key_layout(self):
        key = ResultCache.derive_key("happy", {"platforms": ["b", "a"]})
        assert key == 'happy_{"platforms":["a","b"],"contentType":"all","minRating":5.0,"yearFrom":null,"yearTo":null}'


def test_set_then_get_returns_payload(make_cache, make_item):
    payload = [make_item(1, genres=[35, 16]), make_item(2, content_type="tv_show", first_air_date="2023-05-01")]

    async def scenario():
        cache = make_cache()
        await cache.set("k", payload, mood="happy", filters={"platforms": ["netflix"]})
        result = await cache.get("k")
        await cache.shutdown()
        return result

    assert run(scenario()) == payload


def test_get_unknown_key_is_a_miss(make_cache):
    async def scenario():
        cache = make_cache()
        result = await cache.get("missing")
        await cache.shutdown()
        return result

    assert run(scenario()) is None


def test_entry_is_served_until_ttl_then_expires(make_cache, make_item, clock):
    payload = [make_item(1)]

    async def scenario():
        cache = make_cache()
        await cache.set("k", payload)

        clock.advance(CACHE_TTL_MS)
        at_ttl = await cache.get("k")

        clock.advance(1)
        after_ttl = await cache.get("k")
        stats = await cache.stats()
        await cache.shutdown()
        return at_ttl, after_ttl, stats

    at_ttl, after_ttl, stats = run(scenario())
    assert at_ttl == payload
    assert after_ttl is None
    assert stats.count == 0
    assert stats.total_size == 0


def test_set_replaces_instead_of_merging(make_cache, make_item, redis_server, clock):
    async def scenario():
        cache = make_cache()
        await cache.set("k", [make_item(1), make_item(2)], mood="happy", filters={"minRating": 7})
        clock.advance(1000)
        await cache.set("k", [make_item(3)])
        payload = await cache.get("k")
        stored = await cache._client.hgetall(cache._entry_key("k"))
        await cache.shutdown()
        return payload, stored

    payload, stored = run(scenario())
    assert [item.id for item in payload] == [3]
    assert "mood" not in stored
    assert "filters" not in stored
    assert int(stored["timestamp"]) == clock.now


def test_set_refreshes_timestamp(make_cache, make_item, clock):
    async def scenario():
        cache = make_cache()
        await cache.set("k", [make_item(1)])
        clock.advance(CACHE_TTL_MS - 10)
        await cache.set("k", [make_item(1)])
        clock.advance(CACHE_TTL_MS - 10)
        result = await cache.get("k")
        await cache.shutdown()
        return result

    assert run(scenario()) is not None


def test_delete_and_clear(make_cache, make_item):
    async def scenario():
        cache = make_cache()
        for key in ("a", "b", "c"):
            await cache.set(key, [make_item(1)])
        await cache.delete("a")
        await cache.delete("a")
        after_delete = (await cache.get("a"), (await cache.stats()).count)
        deleted = await cache.clear()
        after_clear = await cache.stats()
        await cache.shutdown()
        return after_delete, deleted, after_clear

    (missing, remaining), deleted, after_clear = run(scenario())
    assert missing is None
    assert remaining == 2
    assert deleted == 2
    assert after_clear.count == 0


def test_clear_leaves_other_namespaces_alone(make_cache, make_item):
    async def scenario():
        ours = make_cache(namespace="Ours")
        theirs = make_cache(namespace="Theirs")
        await ours.set("k", [make_item(1)])
        await theirs.set("k", [make_item(2)])
        await ours.clear()
        result = await theirs.get("k")
        await ours.shutdown()
        await theirs.shutdown()
        return result

    assert [item.id for item in run(scenario())] == [2]


def test_sweep_removes_only_expired_entries(make_cache, make_item, clock):
    async def scenario():
        cache = make_cache()
        await cache.set("old", [make_item(1)])
        clock.advance(CACHE_TTL_MS // 2)
        await cache.set("fresh", [make_item(2), make_item(3)])
        clock.advance(CACHE_TTL_MS // 2 + 1)

        removed = await cache.sweep_expired()
        again = await cache.sweep_expired()
        stats = await cache.stats()
        fresh = await cache.get("fresh")
        await cache.shutdown()
        return removed, again, stats, fresh

    removed, again, stats, fresh = run(scenario())
    assert removed == 1
    assert again == 0
    assert stats.count == 1
    assert stats.total_size == 2
    assert [item.id for item in fresh] == [2, 3]


def test_sweep_tolerates_entries_already_deleted(make_cache, make_item, clock):
    async def scenario():
        cache = make_cache()
        await cache.set("k", [make_item(1)])
        clock.advance(CACHE_TTL_MS + 1)
        # Lazy expiry on read removes the entry first
        assert await cache.get("k") is None
        removed = await cache.sweep_expired()
        await cache.shutdown()
        return removed

    assert run(scenario()) == 0


def test_stats_reports_count_size_and_oldest_age(make_cache, make_item, clock):
    async def scenario():
        cache = make_cache()
        empty = await cache.stats()
        await cache.set("a", [make_item(1), make_item(2)])
        clock.advance(5000)
        await cache.set("b", [make_item(3)])
        clock.advance(1000)
        stats = await cache.stats()
        await cache.shutdown()
        return empty, stats

    empty, stats = run(scenario())
    assert (empty.count, empty.total_size, empty.oldest_age_ms) == (0, 0, 0)
    assert stats.count == 2
    assert stats.total_size == 3
    assert stats.oldest_age_ms == 6000


def test_init_failure_is_reported_and_retried_lazily(make_cache, make_item, redis_server):
    async def scenario():
        cache = make_cache()
        redis_server.connected = False
        with pytest.raises(CacheUnavailableError):
            await cache.init()
        with pytest.raises(CacheUnavailableError):
            await cache.get("k")

        redis_server.connected = True
        await cache.set("k", [make_item(1)])
        result = await cache.get("k")
        await cache.shutdown()
        return result

    assert [item.id for item in run(scenario())] == [1]


def test_storage_failure_after_init_is_reported(make_cache, make_item, redis_server):
    async def scenario():
        cache = make_cache()
        await cache.init()
        redis_server.connected = False
        errors = []
        for op in (cache.get("k"), cache.set("k", [make_item(1)]), cache.stats(), cache.sweep_expired()):
            try:
                await op
            except CacheUnavailableError as exc:
                errors.append(exc.operation)
        redis_server.connected = True
        await cache.shutdown()
        return errors

    assert run(scenario()) == ["get", "set", "stats", "sweep"]


def test_schema_version_is_recorded_and_mismatch_drops_entries(make_cache, make_item, redis_server):
    async def scenario():
        cache = make_cache()
        await cache.set("k", [make_item(1)])
        client = cache._client
        version = await client.get(cache._version_key)
        await client.set(cache._version_key, "0")
        await cache.shutdown()

        reopened = make_cache()
        result = await reopened.get("k")
        new_version = await reopened._client.get(reopened._version_key)
        await reopened.shutdown()
        return version, result, new_version

    version, result, new_version = run(scenario())
    assert version == "1"
    assert result is None
    assert new_version == "1"


def test_unreadable_entry_is_treated_as_miss(make_cache):
    async def scenario():
        cache = make_cache()
        await cache.init()
        await cache._client.hset(cache._entry_key("bad"), mapping={"key": "bad", "data": "{not json"})
        result = await cache.get("bad")
        leftover = await cache._client.exists(cache._entry_key("bad"))
        await cache.shutdown()
        return result, leftover

    assert run(scenario()) == (None, 0)


def test_sweeper_runs_in_background_and_stops_on_shutdown(make_cache, make_item, clock):
    async def scenario():
        cache = make_cache()
        await cache.set("k", [make_item(1)])
        clock.advance(CACHE_TTL_MS + 1)

        task = cache.start_sweeper(interval_seconds=0.01)
        assert cache.start_sweeper(interval_seconds=0.01) is task
        for _ in range(100):
            await asyncio.sleep(0.01)
            if (await cache.stats()).count == 0:
                break
        count = (await cache.stats()).count
        await cache.shutdown()
        return count, task

    count, task = run(scenario())
    assert count == 0
    assert task.cancelled()


def test_sweeper_survives_store_errors(make_cache, make_item, clock, redis_server):
    async def scenario():
        cache = make_cache()
        await cache.set("k", [make_item(1)])
        clock.advance(CACHE_TTL_MS + 1)
        redis_server.connected = False
        task = cache.start_sweeper(interval_seconds=0.01)
        await asyncio.sleep(0.05)
        alive_while_down = not task.done()
        redis_server.connected = True
        for _ in range(100):
            await asyncio.sleep(0.01)
            if (await cache.stats()).count == 0:
                break
        count = (await cache.stats()).count
        await cache.shutdown()
        return alive_while_down, count

    assert run(scenario()) == (True, 0)


def test_default_client_uses_configured_url(monkeypatch):
    created = {}

    def fake_from_url(url, **kwargs):
        created["url"] = url
        created["kwargs"] = kwargs
        return object()

    monkeypatch.setattr(redis, "from_url", fake_from_url)
    from moodwatch.services import result_cache

    result_cache._default_client()
    assert created["url"] == result_cache.settings.REDIS_URL
    assert created["kwargs"]["decode_responses"] is True


def test_malformed_redis_url_is_reported_as_unavailable():
    async def scenario():
        cache = ResultCache(namespace="BadUrl", client_factory=lambda: redis.from_url("localhost:6379"))
        with pytest.raises(CacheUnavailableError) as init_error:
            await cache.init()
        with pytest.raises(CacheUnavailableError):
            await cache.get("k")
        await cache.shutdown()
        return init_error.value

    error = run(scenario())
    assert error.operation == "init"
    assert isinstance(error.cause, ValueError)


def test_expiry_delete_keeps_a_rewritten_entry(make_cache, make_item, clock):
    async def scenario():
        cache = make_cache()
        await cache.set("k", [make_item(1)])
        stale = clock.now
        clock.advance(1000)
        await cache.set("k", [make_item(2)])
        removed = await cache._delete_if_unchanged(cache._client, "k", stale)
        result = await cache.get("k")
        await cache.shutdown()
        return removed, result

    removed, result = run(scenario())
    assert removed is False
    assert [item.id for item in result] == [2]


def test_sweep_skips_entry_rewritten_after_index_scan(make_cache, make_item, clock):
    async def scenario():
        cache = make_cache()
        await cache.set("k", [make_item(1)])
        old = clock.now
        clock.advance(CACHE_TTL_MS + 1)
        await cache.set("k", [make_item(2)])
        # Index still reports the old score, as if read before the rewrite
        await cache._client.zadd(cache._index_key, {"k": old})
        removed = await cache.sweep_expired()
        result = await cache.get("k")
        await cache.shutdown()
        return removed, result

    removed, result = run(scenario())
    assert removed == 0
    assert [item.id for item in result] == [2]


def test_unreadable_filters_raise_a_domain_error():
    with pytest.raises(InvalidFiltersError) as excinfo:
        ResultCache.derive_key("happy", {"contentType": "documentary"})
    assert isinstance(excinfo.value, MoodwatchError)
    with pytest.raises(InvalidFiltersError):
        ResultCache.derive_key("happy", {"yearFrom": "last year"})
