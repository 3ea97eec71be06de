"""Ordering settings tests."""

from datetime import time
from decimal import Decimal

from sqlalchemy.orm import Session

from lunchbot.models import AppSetting
from lunchbot.services.settings_service import (
    COMBO_SURCHARGE_KEY,
    ensure_default_settings,
    resolve_ordering_policy,
    save_ordering_settings,
)


def test_defaults_apply_without_rows(db: Session) -> None:
    policy = resolve_ordering_policy(db)

    assert policy.deadline_time == time(9, 0)
    assert policy.combo_surcharge == Decimal("15")
    assert policy.deadline_label == "09:00"


def test_ensure_default_settings_is_idempotent(db: Session) -> None:
    ensure_default_settings(db)
    ensure_default_settings(db)

    assert db.query(AppSetting).count() == 2


def test_saved_values_win_over_defaults(db: Session) -> None:
    save_ordering_settings(db, deadline_time=time(10, 30), combo_surcharge=Decimal("20"))

    policy = resolve_ordering_policy(db)

    assert policy.deadline_time == time(10, 30)
    assert policy.combo_surcharge == Decimal("20")


def test_corrupt_value_falls_back_to_default(db: Session) -> None:
    db.add(AppSetting(key=COMBO_SURCHARGE_KEY, value="lots"))
    db.commit()

    assert resolve_ordering_policy(db).combo_surcharge == Decimal("15")
