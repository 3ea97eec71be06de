"""Operating-timezone clock helpers used for 'today' and deadline checks."""

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from lunchbot.core.config import settings


def operating_zone() -> ZoneInfo:
    """Return the fixed zone all ordering dates and deadlines are evaluated in."""
    return ZoneInfo(settings.operating_timezone)


def local_now() -> datetime:
    """Return the current aware datetime in the operating timezone.

    The host's local zone is never consulted.
    """
    return datetime.now(operating_zone())


def local_today() -> date:
    return local_now().date()


def to_local(value: datetime) -> datetime:
    """Convert a stored timestamp to the operating timezone; naive values are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(operating_zone())
