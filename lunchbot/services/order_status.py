"""Order status transition helpers."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from lunchbot.models.order import Order

PREPARING: str = "preparing"
FINISHED: str = "finished"
CANCELLED_BY_USER: str = "cancelled_by_user"
CANCELLED_BY_SYSTEM: str = "cancelled_by_system"

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    PREPARING: {FINISHED, CANCELLED_BY_USER, CANCELLED_BY_SYSTEM},
    FINISHED: set(),
    CANCELLED_BY_USER: set(),
    CANCELLED_BY_SYSTEM: set(),
}


def can_transition(current: str, new: str) -> bool:
    """Return whether order can move from current to new status."""
    return new in ALLOWED_TRANSITIONS.get(current, set())


def compare_and_set_status(db: Session, order: Order, new_status: str) -> bool:
    """Move ``order`` to ``new_status`` only if the stored row is still in its loaded status.

    Returns False when a concurrent writer changed the row first (or the
    transition is not allowed), in which case nothing is written.
    """
    expected: str = order.status
    if not can_transition(expected, new_status):
        return False
    now = datetime.now(timezone.utc)
    result = db.execute(
        update(Order)
        .where(Order.id == order.id, Order.status == expected)
        .values(status=new_status, status_updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.refresh(order, attribute_names=["status"])
        return False
    set_committed_value(order, "status", new_status)
    set_committed_value(order, "status_updated_at", now)
    return True
