from typing import Any

from pydantic import BaseModel, Field

from moodwatch.models.content import ContentItem
from moodwatch.models.discovery import DiscoveryFilters
from moodwatch.models.profile import UserProfile


class ScoreRequest(BaseModel):
    items: list[ContentItem]
    profile: UserProfile | None = None


class BasicScoreRequest(BaseModel):
    item: ContentItem
    factors: dict[str, float] = Field(default_factory=dict)


class SimilarRequest(BaseModel):
    target: ContentItem
    candidates: list[ContentItem]
    limit: int = Field(default=10, ge=0)


class DiscoverRequest(BaseModel):
    filters: DiscoveryFilters = Field(default_factory=DiscoveryFilters)
    # Raw items are validated one by one so a bad item does not reject the request
    candidates: list[dict[str, Any]] = Field(default_factory=list)
    profile: UserProfile | None = None
