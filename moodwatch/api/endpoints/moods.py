from fastapi import APIRouter, Query

from moodwatch.models.mood import TimeOfDaySuggestion
from moodwatch.services.genre import genre_names
from moodwatch.services.mood import MOOD_MAPPINGS, genres_for_mood, time_based_suggestion

router = APIRouter(tags=["moods"])


@router.get("/moods")
async def list_moods() -> dict:
    return {
        "moods": [
            {"mood": m.mood, "genres": sorted(m.genres), "genre_names": genre_names(m.genres), "weight": m.weight}
            for m in MOOD_MAPPINGS
        ]
    }


@router.get("/moods/{mood}")
async def get_mood_genres(mood: str) -> dict:
    """Genres for a mood. Unknown moods return an empty list."""
    genres = genres_for_mood(mood)
    return {"mood": mood, "genres": sorted(genres), "genre_names": genre_names(genres)}


@router.get("/time-suggestion", response_model=TimeOfDaySuggestion)
async def get_time_suggestion(hour: int | None = Query(default=None)) -> TimeOfDaySuggestion:
    return time_based_suggestion(hour)
