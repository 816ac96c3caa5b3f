from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from moodwatch.core.constants import DEFAULT_CONTENT_TYPE_FILTER, DEFAULT_MIN_RATING
from moodwatch.core.exceptions import InvalidFiltersError
from moodwatch.models.content import ContentItem


class DiscoveryFilters(BaseModel):
    """User-selected filters for a discovery run. Accepts camelCase or snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    platforms: list[str] = Field(default_factory=list)
    content_type: Literal["all", "movie", "tv_show"] = DEFAULT_CONTENT_TYPE_FILTER
    min_rating: float = DEFAULT_MIN_RATING
    year_from: int | None = None
    year_to: int | None = None

    @field_validator("platforms", mode="before")
    @classmethod
    def _coerce_platforms(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("content_type", mode="before")
    @classmethod
    def _coerce_content_type(cls, value: Any) -> Any:
        if value in (None, ""):
            return DEFAULT_CONTENT_TYPE_FILTER
        if isinstance(value, str) and value.lower() in ("tv", "series", "show"):
            return "tv_show"
        return value

    @field_validator("min_rating", mode="before")
    @classmethod
    def _coerce_min_rating(cls, value: Any) -> Any:
        return DEFAULT_MIN_RATING if value is None else value

    @classmethod
    def coerce(cls, filters: "DiscoveryFilters | Mapping[str, Any] | None") -> "DiscoveryFilters":
        """Accept a model, a camel/snake-case mapping or None. Raises InvalidFiltersError."""
        if filters is None:
            return cls()
        if isinstance(filters, cls):
            return filters
        try:
            return cls.model_validate(dict(filters))
        except (ValidationError, TypeError, ValueError) as exc:
            raise InvalidFiltersError(f"Invalid discovery filters: {exc}") from exc

    def canonical(self) -> dict[str, Any]:
        """Fixed-order snapshot used for cache keys."""
        return {
            "platforms": sorted(self.platforms),
            "contentType": self.content_type,
            "minRating": self.min_rating,
            "yearFrom": self.year_from,
            "yearTo": self.year_to,
        }

    def accepts(self, item: ContentItem) -> bool:
        """Whether an item passes the content type, rating and year filters."""
        if self.content_type != "all" and item.content_type != self.content_type:
            return False
        if item.vote_average < self.min_rating:
            return False
        if self.year_from is not None or self.year_to is not None:
            release = item.release
            if release is None:
                return False
            if self.year_from is not None and release.year < self.year_from:
                return False
            if self.year_to is not None and release.year > self.year_to:
                return False
        return True


class DiscoveryResult(BaseModel):
    mood: str
    cache_key: str
    from_cache: bool
    results: list[ContentItem]
    all_results: list[ContentItem]
