"""Deadline policy tests."""

from datetime import date, time, timedelta

from conftest import TODAY, at
from lunchbot.services.deadline_policy import is_past_date, is_past_deadline


def test_before_cutoff_is_open() -> None:
    assert is_past_deadline(at(8, 59), time(9, 0), TODAY) is False


def test_cutoff_minute_closes_the_window() -> None:
    assert is_past_deadline(at(9, 0), time(9, 0), TODAY) is True
    assert is_past_deadline(at(10, 30), time(9, 0), TODAY) is True


def test_seconds_do_not_matter() -> None:
    reference = at(8, 59).replace(second=59, microsecond=999999)
    assert is_past_deadline(reference, time(9, 0), TODAY) is False


def test_other_dates_are_never_past_deadline() -> None:
    tomorrow = TODAY + timedelta(days=1)
    yesterday = TODAY - timedelta(days=1)

    assert is_past_deadline(at(23, 59), time(9, 0), tomorrow) is False
    assert is_past_deadline(at(23, 59), time(9, 0), yesterday) is False


def test_past_date_detection() -> None:
    assert is_past_date(at(0, 0), TODAY - timedelta(days=1)) is True
    assert is_past_date(at(23, 59), TODAY) is False
    assert is_past_date(at(12, 0), date(2026, 3, 3)) is False
