from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import datetime
from typing import Any

from loguru import logger
from pydantic import ValidationError

from moodwatch.core.config import settings
from moodwatch.core.exceptions import CacheUnavailableError, UnknownMoodError
from moodwatch.models.content import ContentItem, dedupe_items
from moodwatch.models.discovery import DiscoveryFilters, DiscoveryResult
from moodwatch.models.profile import UserProfile
from moodwatch.services.mood import genres_for_mood
from moodwatch.services.result_cache import ResultCache
from moodwatch.services.scoring import ScoringEngine
from moodwatch.services.similarity import find_similar

RawItem = ContentItem | Mapping[str, Any]
# Async callable returning candidates for (mood, mood genres, filters)
CandidateSource = Callable[[str, frozenset[int], DiscoveryFilters], Awaitable[Iterable[RawItem]]]


def ingest_items(raw_items: Iterable[RawItem]) -> list[ContentItem]:
    """Validate raw items from a content source, skipping the ones that cannot be read."""
    items: list[ContentItem] = []
    for raw in raw_items:
        if isinstance(raw, ContentItem):
            items.append(raw)
            continue
        try:
            items.append(ContentItem.model_validate(raw))
        except ValidationError as exc:
            item_id = raw.get("id") if isinstance(raw, Mapping) else raw
            logger.warning(f"Skipping invalid content item {item_id!r}: {exc.error_count()} errors")
    return items


def balance_content_types(items: list[ContentItem], page_size: int) -> list[ContentItem]:
    """
    Interleave movies and TV shows for the first page.

    Movies get ``ceil(page_size / 2)`` slots and TV shows the rest; when one
    side runs short the other fills its slots. Relative order within a type
    is kept.
    """
    if page_size <= 0:
        return []
    movies = [i for i in items if i.content_type == "movie"]
    shows = [i for i in items if i.content_type == "tv_show"]

    movie_slots = min(len(movies), page_size - page_size // 2)
    show_slots = min(len(shows), page_size // 2)
    spare = page_size - movie_slots - show_slots
    extra = min(spare, len(movies) - movie_slots)
    movie_slots += extra
    show_slots += min(spare - extra, len(shows) - show_slots)

    page: list[ContentItem] = []
    for i in range(max(movie_slots, show_slots)):
        if i < movie_slots:
            page.append(movies[i])
        if i < show_slots:
            page.append(shows[i])
    return page


class DiscoveryService:
    """
    Mood-based discovery with a read-through result cache.

    Cache failures never fail a discovery run: a failed read is a miss and a
    failed write only loses the cached copy.
    """

    def __init__(self, cache: ResultCache, page_size: int | None = None):
        self.cache = cache
        self.page_size = page_size or settings.DISCOVERY_RESULT_LIMIT

    async def _cached(self, key: str) -> list[ContentItem] | None:
        try:
            return await self.cache.get(key)
        except CacheUnavailableError as exc:
            logger.warning(f"Cache read failed, recomputing: {exc}")
            return None

    async def _store(self, key: str, items: list[ContentItem], mood: str, filters: DiscoveryFilters) -> None:
        try:
            await self.cache.set(key, items, mood=mood, filters=filters)
        except CacheUnavailableError as exc:
            logger.warning(f"Failed to cache results: {exc}")

    async def discover(
        self,
        mood: str,
        filters: DiscoveryFilters | Mapping[str, Any] | None = None,
        *,
        source: CandidateSource | None = None,
        candidates: Iterable[RawItem] | None = None,
        profile: UserProfile | None = None,
        now: datetime | None = None,
    ) -> DiscoveryResult:
        """
        Discover content for a mood.

        Candidates come from ``source`` (called only on a cache miss) or from an
        already fetched ``candidates`` list.
        """
        genres = genres_for_mood(mood)
        if not genres:
            raise UnknownMoodError(mood)

        filters = DiscoveryFilters.coerce(filters)

        key = self.cache.derive_key(mood, filters)
        cached = await self._cached(key)
        if cached:
            unique = dedupe_items(cached)
            logger.info(f"Using cached results for mood '{mood}' ({len(unique)} items)")
            return DiscoveryResult(
                mood=mood, cache_key=key, from_cache=True, results=unique[: self.page_size], all_results=unique
            )

        if source is not None:
            raw_items = await source(mood, genres, filters)
        else:
            raw_items = candidates or []

        items = ingest_items(raw_items)
        pool = [item for item in items if item.genres & genres and filters.accepts(item)]
        logger.debug(f"Mood '{mood}': {len(pool)} of {len(items)} candidates match genres and filters")

        ranked = dedupe_items(ScoringEngine.rank(pool, profile, now))
        page = balance_content_types(ranked, self.page_size) or ranked[: self.page_size]

        if ranked:
            await self._store(key, ranked, mood, filters)

        logger.info(f"Discovered {len(ranked)} unique results for mood '{mood}'")
        return DiscoveryResult(mood=mood, cache_key=key, from_cache=False, results=page, all_results=ranked)

    @staticmethod
    def more_like_this(
        target: ContentItem, candidates: Iterable[RawItem], limit: int
    ) -> list[ContentItem]:
        return find_similar(target, dedupe_items(ingest_items(candidates)), limit)
