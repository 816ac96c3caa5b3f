from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from moodwatch.core import constants as c
from moodwatch.models.content import ContentItem
from moodwatch.models.profile import UserProfile
from moodwatch.services.mood import time_based_suggestion


class BasicScoreFactors(BaseModel):
    """Externally computed factors for the basic score. Missing factors count as 0."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    tmdb_score: float = 0.0  # TMDB rating on the 0-10 scale
    genre_match_score: float = 0.0
    mood_match_score: float = 0.0
    recency_score: float = 0.0
    platform_score: float = 0.0
    popularity_score: float = 0.0


class SmartScoreBreakdown(BaseModel):
    base: float
    genre_match: float
    trending_boost: float
    time_of_day: float
    watch_history: float
    popularity: float
    total: float


def _days_since(release: date | str, now: datetime) -> int:
    if isinstance(release, str):
        release = date.fromisoformat(release[:10])
    return (now.date() - release).days


class ScoringEngine:
    """
    Relevance scoring for a single content item.

    All methods are pure: the same inputs (including ``now``) always give the
    same score. Composite scores are weighted sums and are not clamped; callers
    supply factors in [0, 1] to keep the result in [0, 1].
    """

    @staticmethod
    def basic_score(item: ContentItem, factors: BasicScoreFactors | Mapping[str, Any] | None) -> float:
        if factors is None:
            factors = BasicScoreFactors()
        elif not isinstance(factors, BasicScoreFactors):
            factors = BasicScoreFactors.model_validate({k: v for k, v in factors.items() if v is not None})

        return (
            (factors.tmdb_score / 10) * c.BASIC_WEIGHT_TMDB
            + factors.genre_match_score * c.BASIC_WEIGHT_GENRE_MATCH
            + factors.mood_match_score * c.BASIC_WEIGHT_MOOD_MATCH
            + factors.recency_score * c.BASIC_WEIGHT_RECENCY
            + factors.platform_score * c.BASIC_WEIGHT_PLATFORM
            + factors.popularity_score * c.BASIC_WEIGHT_POPULARITY
        )

    @staticmethod
    def genre_match_score(item_genres: Iterable[int], target_genres: Iterable[int]) -> float:
        """Share of the target genres present on the item; no target means a full match."""
        target = set(target_genres)
        if not target:
            return 1.0
        matches = len(set(item_genres) & target)
        return min(matches / len(target), 1.0)

    @staticmethod
    def recency_score(release: date | str | None, content_type: str = "movie", now: datetime | None = None) -> float:
        """Step curve over days since release. Unreleased or undated titles score 0."""
        if not release:
            return 0.0
        try:
            days = _days_since(release, now or datetime.now())
        except ValueError:
            logger.warning(f"Ignoring unparseable release date {release!r}")
            return 0.0

        if days < 0:
            return 0.0
        if days < 90:
            return 1.0
        if days < 180:
            return 0.9
        if days < 365:
            return 0.8
        if days < 730:
            return 0.6
        return 0.4

    @staticmethod
    def trending_boost(release: date | None, now: datetime) -> float:
        if release is None:
            return 0.0
        days = _days_since(release, now)

        if days < 0:
            return 0.0
        if days <= c.TRENDING_WINDOW_DAYS:
            return 1.0 - (days / c.TRENDING_WINDOW_DAYS) * c.TRENDING_DECAY
        if days <= 365:
            return c.TRENDING_RECENT_YEAR_BOOST
        return c.TRENDING_OLD_BOOST

    @staticmethod
    def profile_genre_match(genres: frozenset[int], profile: UserProfile | None) -> float:
        if profile is None or not genres:
            return c.NEUTRAL_FACTOR
        scores = [s for s in (profile.affinity(g) for g in genres) if s > 0]
        if not scores:
            return c.NEUTRAL_FACTOR
        return sum(scores) / len(scores) / 100

    @staticmethod
    def time_of_day_score(genres: frozenset[int], hour: int) -> float:
        bucket_genres = time_based_suggestion(hour).suggested_genres
        matches = len(genres & bucket_genres)
        if matches == 0:
            return c.NEUTRAL_FACTOR
        return min(matches / len(bucket_genres) + 0.5, 1.0)

    @staticmethod
    def watch_history_score(genres: frozenset[int], profile: UserProfile | None) -> float:
        if profile is None or not genres:
            return c.NEUTRAL_FACTOR
        counts = [n for n in (profile.watched_genre_counts.get(g, 0) for g in genres) if n > 0]
        if not counts:
            return c.NEUTRAL_FACTOR
        return min(sum(counts) / len(counts) / c.WATCH_COUNT_SATURATION, 1.0)

    @staticmethod
    def popularity_score(popularity: float) -> float:
        return min(popularity / c.POPULARITY_SATURATION, 1.0)

    @classmethod
    def smart_score_breakdown(
        cls, item: ContentItem, profile: UserProfile | None = None, now: datetime | None = None
    ) -> SmartScoreBreakdown:
        now = now or datetime.now()
        genres = item.genres

        base = item.vote_average / 10
        genre_match = cls.profile_genre_match(genres, profile)
        trending = cls.trending_boost(item.release, now)
        time_score = cls.time_of_day_score(genres, now.hour)
        watch_history = cls.watch_history_score(genres, profile)
        popularity = cls.popularity_score(item.popularity)

        total = (
            base * c.SMART_WEIGHT_BASE
            + genre_match * c.SMART_WEIGHT_GENRE
            + trending * c.SMART_WEIGHT_TRENDING
            + time_score * c.SMART_WEIGHT_TIME_OF_DAY
            + watch_history * c.SMART_WEIGHT_WATCH_HISTORY
            + popularity * c.SMART_WEIGHT_POPULARITY
        )

        return SmartScoreBreakdown(
            base=base,
            genre_match=genre_match,
            trending_boost=trending,
            time_of_day=time_score,
            watch_history=watch_history,
            popularity=popularity,
            total=total,
        )

    @classmethod
    def smart_score(cls, item: ContentItem, profile: UserProfile | None = None, now: datetime | None = None) -> float:
        return cls.smart_score_breakdown(item, profile, now).total

    @classmethod
    def rank(
        cls, items: Iterable[ContentItem], profile: UserProfile | None = None, now: datetime | None = None
    ) -> list[ContentItem]:
        """Sort by smart score, highest first. Equal scores keep their input order."""
        now = now or datetime.now()
        scored = [(cls.smart_score(item, profile, now), item) for item in items]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [item for _, item in scored]

    @staticmethod
    def adjust_genre_score(profile: UserProfile | None, genre: int, delta: float) -> UserProfile:
        """Apply like/dislike feedback to a genre affinity. The input profile is left unchanged."""
        return (profile or UserProfile()).adjust_genre_score(genre, delta)
