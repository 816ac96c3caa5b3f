import json
from datetime import date, datetime
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

ContentType = Literal["movie", "tv_show"]

# Aliases used by content sources for the TV content type
_TV_ALIASES = {"tv", "series", "tv_show", "show"}


def normalize_genres(raw: Any) -> frozenset[int]:
    """
    Normalize a genres field into a set of integer genre codes.

    Content sources deliver genres as a JSON-encoded string, a flat list of ids,
    or a list of ``{"id": ..., "name": ...}`` objects. Malformed entries are
    dropped with a warning.
    """
    if raw is None or raw == "":
        return frozenset()

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Dropping undecodable genres value: {raw!r}")
            return frozenset()

    if isinstance(raw, (int, dict)) and not isinstance(raw, bool):
        raw = [raw]

    if not isinstance(raw, (list, tuple, set, frozenset)):
        logger.warning(f"Dropping genres value of unsupported type {type(raw).__name__}")
        return frozenset()

    codes: set[int] = set()
    for entry in raw:
        value = entry.get("id") if isinstance(entry, dict) else entry
        if isinstance(value, bool):
            logger.warning(f"Skipping malformed genre entry: {entry!r}")
            continue
        try:
            codes.add(int(value))
        except (TypeError, ValueError):
            logger.warning(f"Skipping malformed genre entry: {entry!r}")
    return frozenset(codes)


def _parse_date(value: Any) -> Any:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        # ISO timestamps: keep the calendar date only
        return value[:10]
    return value


class ContentItem(BaseModel):
    """A movie or TV show as delivered by the content-metadata source."""

    model_config = ConfigDict(frozen=True, extra="allow")

    id: int
    content_type: ContentType = "movie"
    genres: frozenset[int] = Field(default_factory=frozenset)
    vote_average: float = 0.0
    vote_count: int = 0
    popularity: float = 0.0
    release_date: date | None = None
    first_air_date: date | None = None
    title: str | None = None
    name: str | None = None
    overview: str | None = None
    poster_path: str | None = None
    original_language: str | None = None

    @field_validator("genres", mode="before")
    @classmethod
    def _coerce_genres(cls, value: Any) -> frozenset[int]:
        return normalize_genres(value)

    @field_validator("content_type", mode="before")
    @classmethod
    def _coerce_content_type(cls, value: Any) -> Any:
        if isinstance(value, str) and value.lower() in _TV_ALIASES:
            return "tv_show"
        return value

    @field_validator("release_date", "first_air_date", mode="before")
    @classmethod
    def _coerce_dates(cls, value: Any) -> Any:
        return _parse_date(value)

    @field_validator("vote_average", "popularity", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @property
    def release(self) -> date | None:
        """Release date relevant for the content type."""
        return self.release_date if self.content_type == "movie" else self.first_air_date

    @property
    def display_title(self) -> str | None:
        return self.title or self.name

    @property
    def dedupe_key(self) -> tuple[int, str]:
        return (self.id, self.content_type)


def dedupe_items(items: list[ContentItem]) -> list[ContentItem]:
    """Drop repeated ``(id, content_type)`` pairs, keeping the first occurrence."""
    seen: set[tuple[int, str]] = set()
    unique: list[ContentItem] = []
    for item in items:
        if item.dedupe_key in seen:
            continue
        seen.add(item.dedupe_key)
        unique.append(item)
    return unique
