"""Balance mutations paired with the append-only transaction log.

``pay``, ``refund`` and ``deposit`` never commit: they run inside the unit of
work owned by the caller (order placement, cancellation, settlement or the
admin deposit endpoint), so a rollback there undoes both the balance change
and its audit row.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from lunchbot.models import LedgerTransaction, User
from lunchbot.services.errors import InvalidAmountError, NotFoundError

logger = logging.getLogger(__name__)


def _apply(db: Session, *, user_id: int, delta: Decimal, tx_type: str, amount: Decimal, order_id: int | None) -> None:
    result = db.execute(
        update(User)
        .where(User.id == user_id)
        .values(balance=User.balance + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("User not found.")
    db.add(LedgerTransaction(user_id=user_id, type=tx_type, amount=amount, related_order_id=order_id))
    db.flush()
    user: User | None = db.get(User, user_id)
    if user is not None:
        db.refresh(user, attribute_names=["balance"])


def pay(db: Session, user_id: int, amount: Decimal, order_id: int | None) -> None:
    """Charge an order to the user's balance; the balance may go negative."""
    _apply(db, user_id=user_id, delta=-amount, tx_type="payment", amount=amount, order_id=order_id)


def refund(db: Session, user_id: int, amount: Decimal, order_id: int | None) -> None:
    """Return an order's amount to the user's balance."""
    _apply(db, user_id=user_id, delta=amount, tx_type="refund", amount=amount, order_id=order_id)


def deposit(db: Session, user_id: int, amount: Decimal) -> None:
    """Top up the user's balance."""
    if amount is None or amount <= 0:
        raise InvalidAmountError
    _apply(db, user_id=user_id, delta=amount, tx_type="deposit", amount=amount, order_id=None)


def deposit_funds(db: Session, user_id: int, amount: Decimal) -> User:
    """Admin top-up in its own transaction; returns the refreshed user."""
    try:
        deposit(db, user_id, amount)
        db.commit()
    except Exception:
        db.rollback()
        raise
    user: User = db.get(User, user_id)
    db.refresh(user)
    logger.info("[LEDGER] Deposit of %s for user_id=%s; balance now %s", amount, user_id, user.balance)
    return user


def reconstruct_balance(db: Session, user_id: int) -> Decimal:
    """Recompute a balance from the transaction log alone."""
    signed = case((LedgerTransaction.type == "payment", -LedgerTransaction.amount), else_=LedgerTransaction.amount)
    total = db.scalar(select(func.coalesce(func.sum(signed), 0)).where(LedgerTransaction.user_id == user_id))
    return Decimal(total).quantize(Decimal("0.01"))


def list_transactions(db: Session, user_id: int) -> list[LedgerTransaction]:
    return list(
        db.scalars(
            select(LedgerTransaction)
            .where(LedgerTransaction.user_id == user_id)
            .order_by(LedgerTransaction.id.asc())
        ).all()
    )
