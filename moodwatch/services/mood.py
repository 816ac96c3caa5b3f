from datetime import datetime

from moodwatch.models.mood import DurationRange, MoodGenreMapping, TimeOfDay, TimeOfDaySuggestion

# Genre codes are TMDB ids (see services/genre.py). Several moods mix movie-only
# genres (Romance 10749, Thriller 53) with their TV counterparts (Soap 10766,
# Sci-Fi & Fantasy 10765) so one mood covers both content types.
MOOD_MAPPINGS: tuple[MoodGenreMapping, ...] = (
    MoodGenreMapping(mood="happy", genres=frozenset({35, 10751, 16})),
    MoodGenreMapping(mood="melancholic", genres=frozenset({18, 99})),
    MoodGenreMapping(mood="excited", genres=frozenset({28, 53, 12, 878, 10759, 10765})),
    MoodGenreMapping(mood="relaxed", genres=frozenset({99, 16, 10749, 35, 10764, 10766})),
    MoodGenreMapping(mood="romantic", genres=frozenset({10749, 18, 35, 10766})),
    MoodGenreMapping(mood="tense", genres=frozenset({53, 27, 9648, 80})),
    MoodGenreMapping(mood="thoughtful", genres=frozenset({878, 18, 9648, 99, 10765})),
    MoodGenreMapping(mood="playful", genres=frozenset({35, 16, 12, 10751, 10762})),
)

MOODS: tuple[str, ...] = tuple(m.mood for m in MOOD_MAPPINGS)

_MOOD_INDEX: dict[str, MoodGenreMapping] = {m.mood: m for m in MOOD_MAPPINGS}

TIME_BASED_SUGGESTIONS: tuple[TimeOfDaySuggestion, ...] = (
    TimeOfDaySuggestion(
        time_of_day="morning",
        suggested_genres=frozenset({35, 99, 10751, 16}),
        suggested_duration=DurationRange(min=60, max=100),
        description="Light and uplifting content to start your day",
    ),
    TimeOfDaySuggestion(
        time_of_day="afternoon",
        suggested_genres=frozenset({28, 12, 878, 35}),
        suggested_duration=DurationRange(min=90, max=140),
        description="Engaging content for midday entertainment",
    ),
    TimeOfDaySuggestion(
        time_of_day="evening",
        suggested_genres=frozenset({18, 53, 80, 10749}),
        suggested_duration=DurationRange(min=100, max=180),
        description="Deep and immersive stories for evening viewing",
    ),
    TimeOfDaySuggestion(
        time_of_day="night",
        suggested_genres=frozenset({27, 9648, 878, 53}),
        suggested_duration=DurationRange(min=80, max=120),
        description="Thrilling content for late night watching",
    ),
)

_TIME_INDEX: dict[str, TimeOfDaySuggestion] = {s.time_of_day: s for s in TIME_BASED_SUGGESTIONS}


def get_mood_mapping(mood: str) -> MoodGenreMapping | None:
    return _MOOD_INDEX.get(mood)


def genres_for_mood(mood: str) -> frozenset[int]:
    """Genre codes for a mood; unknown moods map to an empty set."""
    mapping = _MOOD_INDEX.get(mood)
    return mapping.genres if mapping else frozenset()


def time_of_day(hour: int | None = None) -> TimeOfDay:
    """Bucket an hour of the day. ``None`` uses the current local hour."""
    if hour is None:
        hour = datetime.now().hour
    hour = hour % 24

    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 22:
        return "evening"
    return "night"


def time_based_suggestion(hour: int | None = None) -> TimeOfDaySuggestion:
    return _TIME_INDEX[time_of_day(hour)]
