"""
Core constants used across the application. Keep these simple and documented.
"""

from typing import Final

# Result cache layout
CACHE_COLLECTION: Final[str] = "results"
CACHE_SCHEMA_VERSION: Final[int] = 1
CACHE_TTL_MS: Final[int] = 60 * 60 * 1000
CACHE_SWEEP_INTERVAL_SECONDS: Final[int] = 5 * 60
CACHE_KEY_SEPARATOR: Final[str] = "_"

# Filter defaults applied when deriving a cache key
DEFAULT_CONTENT_TYPE_FILTER: Final[str] = "all"
DEFAULT_MIN_RATING: Final[float] = 5.0

# Baseline used when a genre has no recorded affinity
DEFAULT_GENRE_AFFINITY: Final[float] = 50.0
MIN_GENRE_AFFINITY: Final[float] = 0.0
MAX_GENRE_AFFINITY: Final[float] = 100.0

# Basic score weights (sum = 1.0)
BASIC_WEIGHT_TMDB: Final[float] = 0.25
BASIC_WEIGHT_GENRE_MATCH: Final[float] = 0.20
BASIC_WEIGHT_MOOD_MATCH: Final[float] = 0.20
BASIC_WEIGHT_RECENCY: Final[float] = 0.10
BASIC_WEIGHT_PLATFORM: Final[float] = 0.10
BASIC_WEIGHT_POPULARITY: Final[float] = 0.15

# Smart score weights (sum = 1.0)
SMART_WEIGHT_BASE: Final[float] = 0.25
SMART_WEIGHT_GENRE: Final[float] = 0.20
SMART_WEIGHT_TRENDING: Final[float] = 0.15
SMART_WEIGHT_TIME_OF_DAY: Final[float] = 0.10
SMART_WEIGHT_WATCH_HISTORY: Final[float] = 0.20
SMART_WEIGHT_POPULARITY: Final[float] = 0.10

# Neutral value for smart score factors without a signal
NEUTRAL_FACTOR: Final[float] = 0.5

# Trending boost window
TRENDING_WINDOW_DAYS: Final[int] = 90
TRENDING_DECAY: Final[float] = 0.5
TRENDING_RECENT_YEAR_BOOST: Final[float] = 0.3
TRENDING_OLD_BOOST: Final[float] = 0.1

# Popularity at which the popularity factor saturates
POPULARITY_SATURATION: Final[float] = 100.0
# Average watch count per genre at which watch history saturates
WATCH_COUNT_SATURATION: Final[float] = 10.0

# Similarity weights
SIMILARITY_GENRE_WEIGHT: Final[float] = 0.5
SIMILARITY_RATING_WEIGHT: Final[float] = 0.3
SIMILARITY_SAME_TYPE_BONUS: Final[float] = 0.2
