from typing import Literal

from pydantic import BaseModel, ConfigDict

TimeOfDay = Literal["morning", "afternoon", "evening", "night"]


class MoodGenreMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    mood: str
    genres: frozenset[int]
    weight: float = 1.0


class DurationRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: int
    max: int


class TimeOfDaySuggestion(BaseModel):
    """Genres and runtimes that suit a part of the day."""

    model_config = ConfigDict(frozen=True)

    time_of_day: TimeOfDay
    suggested_genres: frozenset[int]
    suggested_duration: DurationRange
    description: str
