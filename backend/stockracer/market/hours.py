"""US equity market hours (regular session, no holiday calendar)."""

from __future__ import annotations

from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

MARKET_TZ = ZoneInfo("America/New_York")
MARKET_OPEN = time(9, 30)
MARKET_CLOSE = time(16, 0)


def _ny(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(MARKET_TZ)
    if now.tzinfo is None:
        return now.replace(tzinfo=MARKET_TZ)
    return now.astimezone(MARKET_TZ)


def is_market_open(now: datetime | None = None) -> bool:
    """Weekdays 09:30 to 16:00 New York time."""
    ny = _ny(now)
    if ny.weekday() >= 5:
        return False
    return MARKET_OPEN <= ny.time() < MARKET_CLOSE


def _next_weekday_at(ny: datetime, at: time) -> datetime:
    candidate = ny.replace(hour=at.hour, minute=at.minute, second=0, microsecond=0)
    if ny >= candidate:
        candidate += timedelta(days=1)
    while candidate.weekday() >= 5:
        candidate += timedelta(days=1)
    return candidate


def next_market_open(now: datetime | None = None) -> datetime:
    return _next_weekday_at(_ny(now), MARKET_OPEN)


def next_market_close(now: datetime | None = None) -> datetime:
    return _next_weekday_at(_ny(now), MARKET_CLOSE)
