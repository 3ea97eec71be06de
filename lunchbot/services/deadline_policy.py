"""Ordering deadline rule shared by placement and cancellation."""

from __future__ import annotations

from datetime import date, datetime, time


def is_past_deadline(reference_local: datetime, cutoff: time, candidate_date: date) -> bool:
    """Return True when ``candidate_date`` is today and the cutoff has been reached.

    ``reference_local`` must already be expressed in the operating timezone.
    Other dates are never past the deadline; comparison is at minute precision,
    so a cutoff of 09:00 closes the window at 09:00:00.
    """
    if candidate_date != reference_local.date():
        return False
    now_minute = time(hour=reference_local.hour, minute=reference_local.minute)
    return now_minute >= time(hour=cutoff.hour, minute=cutoff.minute)


def is_past_date(reference_local: datetime, candidate_date: date) -> bool:
    """Return True for dates strictly before the reference day."""
    return candidate_date < reference_local.date()
