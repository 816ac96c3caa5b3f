from typing import Any

from pydantic import BaseModel, Field

from moodwatch.models.content import ContentItem


class CacheEntry(BaseModel):
    key: str
    data: list[ContentItem] = Field(default_factory=list)
    timestamp: int  # epoch milliseconds of the last write
    mood: str | None = None
    filters: dict[str, Any] | None = None


class CacheStats(BaseModel):
    count: int
    total_size: int
    oldest_age_ms: int
