from __future__ import annotations

from datetime import date, datetime, timezone


class TimeProvider:
    """Naive-UTC clock used for row timestamps; swapped out in tests that pin time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()


default_time_provider = TimeProvider()


def utc_now() -> datetime:
    return default_time_provider.now()
