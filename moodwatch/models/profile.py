from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from moodwatch.core.constants import DEFAULT_GENRE_AFFINITY, MAX_GENRE_AFFINITY, MIN_GENRE_AFFINITY


def clamp_affinity(value: float) -> float:
    return max(MIN_GENRE_AFFINITY, min(MAX_GENRE_AFFINITY, float(value)))


class UserProfile(BaseModel):
    """
    Preference signals for one user, supplied per scoring call.

    genre_scores holds an affinity in [0, 100] per genre code; genres without a
    recorded value count as 50. watched_genre_counts holds how many watched
    titles carried each genre.
    """

    model_config = ConfigDict(frozen=True)

    genre_scores: dict[int, float] = Field(default_factory=dict, description="Genre ID → affinity (0-100)")
    watched_genre_counts: dict[int, int] = Field(default_factory=dict, description="Genre ID → watch count")
    preferred_rating_threshold: float | None = None

    @field_validator("genre_scores", mode="after")
    @classmethod
    def _clamp_genre_scores(cls, value: dict[int, float]) -> dict[int, float]:
        return {genre: clamp_affinity(score) for genre, score in value.items()}

    @field_validator("watched_genre_counts", mode="before")
    @classmethod
    def _coerce_watch_counts(cls, value: Any) -> Any:
        # Accept a list of (genre, count) pairs as well as a mapping
        if isinstance(value, (list, tuple)):
            return dict(value)
        return value

    def affinity(self, genre: int) -> float:
        return self.genre_scores.get(genre, DEFAULT_GENRE_AFFINITY)

    def adjust_genre_score(self, genre: int, delta: float) -> "UserProfile":
        """Return a copy with the genre's affinity moved by ``delta``, clamped to [0, 100]."""
        genre_scores = dict(self.genre_scores)
        genre_scores[genre] = clamp_affinity(self.affinity(genre) + delta)
        return self.model_copy(update={"genre_scores": genre_scores})
