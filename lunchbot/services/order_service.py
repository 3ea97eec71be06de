"""Order lifecycle: placement, cancellation and the settlement-only transitions."""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from lunchbot.models import MenuItem, Order, OrderItem, User
from lunchbot.schemas.order import CancellableDate, NeedsDrinkSelection, OrderCancelled, OrderPlaced
from lunchbot.schemas.settings import OrderingPolicy
from lunchbot.services import ledger_service
from lunchbot.services.deadline_policy import is_past_date, is_past_deadline
from lunchbot.services.errors import ForbiddenError, InvalidStateError, NotFoundError, PastDeadlineError
from lunchbot.services.order_status import (
    CANCELLED_BY_SYSTEM,
    CANCELLED_BY_USER,
    FINISHED,
    PREPARING,
    compare_and_set_status,
)

logger = logging.getLogger(__name__)


def order_price(menu_item: MenuItem, is_combo: bool, combo_surcharge: Decimal) -> Decimal:
    """Combo-eligible dishes are listed at combo price; singles drop the surcharge."""
    if menu_item.is_combo_eligible and not is_combo:
        return max(Decimal(menu_item.price) - combo_surcharge, Decimal("0"))
    return Decimal(menu_item.price)


def ensure_window_open(target_date: date, policy: OrderingPolicy, now: datetime, *, action: str) -> None:
    """Raise PastDeadlineError when ``target_date`` no longer accepts changes."""
    if is_past_date(now, target_date):
        raise PastDeadlineError(f"Cannot {action} orders for a past date ({target_date.isoformat()}).")
    if is_past_deadline(now, policy.deadline_time, target_date):
        raise PastDeadlineError(f"Sorry, today's {action} window closed at {policy.deadline_label}.")


def place_order(
    db: Session,
    *,
    user: User,
    menu_item_id: int,
    is_combo: bool,
    selected_drink: str | None,
    policy: OrderingPolicy,
    now: datetime,
) -> OrderPlaced | NeedsDrinkSelection:
    """Create a ``preparing`` order and charge it in one transaction.

    A negative resulting balance is allowed and reported through
    ``balance_negative``; unpayable orders are swept at settlement.
    """
    menu_item: MenuItem | None = db.get(MenuItem, menu_item_id)
    if menu_item is None:
        raise NotFoundError("Menu item not found.")
    ensure_window_open(menu_item.menu_date, policy, now, action="order")

    combo: bool = bool(is_combo and menu_item.is_combo_eligible)
    drink: str | None = (selected_drink or "").strip() or None
    if combo and drink is None:
        return NeedsDrinkSelection(menu_item_id=menu_item.id, item_name=menu_item.name, drinks=list(policy.drinks))

    amount: Decimal = order_price(menu_item, combo, policy.combo_surcharge)
    try:
        order = Order(user_id=user.id, order_for_date=menu_item.menu_date, total_amount=amount, status=PREPARING)
        order.items.append(
            OrderItem(
                item_name=menu_item.name,
                price_per_item=amount,
                quantity=1,
                is_combo=combo,
                selected_drink=drink if combo else None,
            )
        )
        db.add(order)
        db.flush()
        ledger_service.pay(db, user.id, amount, order.id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(user)
    logger.info("[ORDER] user_id=%s placed order_id=%s for %s amount=%s", user.id, order.id, order.order_for_date, amount)
    return OrderPlaced(
        order_id=order.id,
        order_for_date=order.order_for_date,
        item_name=menu_item.name,
        is_combo=combo,
        selected_drink=drink if combo else None,
        total_amount=amount,
        balance=user.balance,
        balance_negative=user.balance < 0,
        deadline_time=policy.deadline_label,
    )


def cancel_order(
    db: Session,
    *,
    user: User,
    order_id: int,
    policy: OrderingPolicy,
    now: datetime,
) -> OrderCancelled:
    """Cancel the caller's own ``preparing`` order before the deadline and refund it."""
    try:
        order: Order | None = db.scalar(select(Order).where(Order.id == order_id).with_for_update())
        if order is None:
            raise NotFoundError("Order not found.")
        if order.user_id != user.id:
            raise ForbiddenError("You can only cancel your own orders.")
        if order.status != PREPARING:
            raise InvalidStateError(f"Order status is '{order.status}'; it cannot be cancelled.")
        ensure_window_open(order.order_for_date, policy, now, action="cancel")

        if not compare_and_set_status(db, order, CANCELLED_BY_USER):
            raise InvalidStateError(f"Order status is '{order.status}'; it cannot be cancelled.")
        ledger_service.refund(db, user.id, order.total_amount, order.id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(user)
    logger.info("[ORDER] user_id=%s cancelled order_id=%s refund=%s", user.id, order_id, order.total_amount)
    return OrderCancelled(order_id=order_id, refunded_amount=order.total_amount, balance=user.balance)


def cancel_order_by_system(db: Session, order: Order) -> None:
    """Settlement sweep: cancel and refund without a deadline check. Does not commit."""
    if not compare_and_set_status(db, order, CANCELLED_BY_SYSTEM):
        raise InvalidStateError(f"Order {order.id} is '{order.status}' and cannot be cancelled by the system.")
    ledger_service.refund(db, order.user_id, order.total_amount, order.id)


def finish_order(db: Session, order: Order) -> None:
    """Settlement finalisation; payment was captured at placement. Does not commit."""
    if not compare_and_set_status(db, order, FINISHED):
        raise InvalidStateError(f"Order {order.id} is '{order.status}' and cannot be finished.")


def list_preparing_orders(db: Session, user: User, order_for_date: date) -> list[Order]:
    """Return the user's cancellable-state orders for one date, newest first."""
    return list(
        db.scalars(
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.user_id == user.id, Order.order_for_date == order_for_date, Order.status == PREPARING)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(10)
        ).all()
    )


def list_cancellable_dates(db: Session, user: User, today: date) -> list[CancellableDate]:
    """Group the user's ``preparing`` orders from today on by date (first five dates)."""
    rows = db.execute(
        select(Order.order_for_date, func.count(Order.id), func.sum(Order.total_amount))
        .where(Order.user_id == user.id, Order.status == PREPARING, Order.order_for_date >= today)
        .group_by(Order.order_for_date)
        .order_by(Order.order_for_date.asc())
        .limit(5)
    ).all()
    return [
        CancellableDate(order_for_date=row[0], order_count=int(row[1]), total_amount=Decimal(row[2]))
        for row in rows
    ]


def list_orders_for_date(db: Session, order_for_date: date) -> list[Order]:
    """Admin view: all orders for a date with their user and line, newest first."""
    return list(
        db.scalars(
            select(Order)
            .options(selectinload(Order.items), selectinload(Order.user))
            .where(Order.order_for_date == order_for_date)
            .order_by(Order.created_at.desc(), Order.id.desc())
        ).all()
    )
