from collections.abc import Iterable

from moodwatch.core.constants import SIMILARITY_GENRE_WEIGHT, SIMILARITY_RATING_WEIGHT, SIMILARITY_SAME_TYPE_BONUS
from moodwatch.models.content import ContentItem


def genre_overlap(candidate: ContentItem, target: ContentItem) -> float:
    """Share of the target's genres that the candidate also carries."""
    if not target.genres:
        return 0.0
    return len(candidate.genres & target.genres) / len(target.genres)


def rating_closeness(candidate: ContentItem, target: ContentItem) -> float:
    return max(0.0, 1 - abs(candidate.vote_average - target.vote_average) / 10)


def similarity_score(candidate: ContentItem, target: ContentItem) -> float:
    same_type = SIMILARITY_SAME_TYPE_BONUS if candidate.content_type == target.content_type else 0.0
    return (
        genre_overlap(candidate, target) * SIMILARITY_GENRE_WEIGHT
        + rating_closeness(candidate, target) * SIMILARITY_RATING_WEIGHT
        + same_type
    )


def find_similar(target: ContentItem, candidates: Iterable[ContentItem], limit: int) -> list[ContentItem]:
    """
    Rank candidates by similarity to ``target`` and return the best ``limit``.

    Candidates sharing the target's id are excluded. Ties keep the order of
    ``candidates``.
    """
    if limit <= 0:
        return []
    scored = [(similarity_score(item, target), item) for item in candidates if item.id != target.id]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [item for _, item in scored[:limit]]
