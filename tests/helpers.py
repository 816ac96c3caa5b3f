import asyncio
from datetime import date, datetime, timedelta

# 2026-10-19 14:00, an afternoon
FIXED_NOW = datetime(2026, 10, 19, 14, 0, 0)


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_760_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def run(coro):
    return asyncio.run(coro)


def released_days_ago(days: int) -> date:
    return FIXED_NOW.date() - timedelta(days=days)
