"""Application settings helpers."""

import logging
from datetime import time
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lunchbot.core.config import settings
from lunchbot.models.app_setting import AppSetting
from lunchbot.schemas.settings import OrderingPolicy

logger = logging.getLogger(__name__)

DEADLINE_TIME_KEY: str = "deadline_time"
COMBO_SURCHARGE_KEY: str = "combo_surcharge"


def parse_hhmm_time(value: str) -> time:
    """Parse time from HH:MM format string."""
    parsed: time = time.fromisoformat(value)
    return time(hour=parsed.hour, minute=parsed.minute)


def _read_values(db: Session) -> dict[str, str]:
    try:
        rows: list[AppSetting] = (
            db.query(AppSetting)
            .filter(AppSetting.key.in_([DEADLINE_TIME_KEY, COMBO_SURCHARGE_KEY]))
            .all()
        )
    except SQLAlchemyError:
        logger.warning("[SETTINGS] app_settings unavailable; using defaults.", exc_info=True)
        db.rollback()
        return {}
    return {row.key: row.value for row in rows}


def resolve_ordering_policy(db: Session) -> OrderingPolicy:
    """Read deadline and combo surcharge with fallback defaults."""
    values: dict[str, str] = _read_values(db)

    try:
        deadline_time: time = parse_hhmm_time(values.get(DEADLINE_TIME_KEY, ""))
    except ValueError:
        deadline_time = settings.default_deadline_time

    try:
        combo_surcharge = Decimal(values.get(COMBO_SURCHARGE_KEY, ""))
    except InvalidOperation:
        combo_surcharge = settings.default_combo_surcharge

    return OrderingPolicy(
        deadline_time=deadline_time,
        combo_surcharge=combo_surcharge,
        drinks=settings.combo_drinks,
    )


def _upsert(db: Session, key: str, value: str) -> None:
    setting: AppSetting | None = db.get(AppSetting, key)
    if setting is None:
        db.add(AppSetting(key=key, value=value))
    else:
        setting.value = value


def save_ordering_settings(
    db: Session,
    *,
    deadline_time: time | None = None,
    combo_surcharge: Decimal | None = None,
) -> OrderingPolicy:
    """Persist changed settings and return the new effective policy."""
    if deadline_time is not None:
        _upsert(db, DEADLINE_TIME_KEY, deadline_time.strftime("%H:%M"))
    if combo_surcharge is not None:
        _upsert(db, COMBO_SURCHARGE_KEY, str(combo_surcharge))
    db.commit()
    logger.info("[SETTINGS] Ordering settings updated (deadline=%s, combo_surcharge=%s)", deadline_time, combo_surcharge)
    return resolve_ordering_policy(db)


def ensure_default_settings(db: Session) -> None:
    """Insert default rows for missing keys."""
    defaults = {
        DEADLINE_TIME_KEY: settings.default_deadline_time.strftime("%H:%M"),
        COMBO_SURCHARGE_KEY: str(settings.default_combo_surcharge),
    }
    created = False
    for key, value in defaults.items():
        if db.get(AppSetting, key) is None:
            db.add(AppSetting(key=key, value=value))
            created = True
    if created:
        db.commit()
