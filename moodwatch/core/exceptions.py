class MoodwatchError(Exception):
    """Base error for the discovery core."""


class CacheUnavailableError(MoodwatchError):
    """The result cache store could not be opened or a transaction failed."""

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        detail = f"Result cache {operation} failed"
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(detail)


class UnknownMoodError(MoodwatchError):
    """The mood has no genre mapping, so there is nothing to discover."""

    def __init__(self, mood: str):
        self.mood = mood
        super().__init__(f"No genres found for mood '{mood}'")


class InvalidFiltersError(MoodwatchError):
    """Discovery filters that cannot be canonicalized, e.g. an unknown content type."""
