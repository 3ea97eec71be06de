"""Ledger service tests: every balance change has a matching transaction row."""

from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from conftest import add_user
from lunchbot.models import LedgerTransaction
from lunchbot.services import ledger_service
from lunchbot.services.errors import InvalidAmountError, NotFoundError


def test_deposit_pay_refund_keep_balance_and_log_consistent(db: Session) -> None:
    user = add_user(db, "U-ledger", "0")

    ledger_service.deposit(db, user.id, Decimal("100"))
    ledger_service.pay(db, user.id, Decimal("65"), None)
    ledger_service.refund(db, user.id, Decimal("65"), None)
    ledger_service.pay(db, user.id, Decimal("80"), None)
    db.commit()
    db.refresh(user)

    assert user.balance == Decimal("20.00")
    assert ledger_service.reconstruct_balance(db, user.id) == user.balance
    types = [tx.type for tx in ledger_service.list_transactions(db, user.id)]
    assert types == ["deposit", "payment", "refund", "payment"]


def test_payment_may_drive_balance_negative(db: Session) -> None:
    user = add_user(db, "U-negative", "10")

    ledger_service.pay(db, user.id, Decimal("50"), None)
    db.commit()
    db.refresh(user)

    assert user.balance == Decimal("-40.00")


def test_rollback_discards_balance_and_transaction_together(db: Session) -> None:
    user = add_user(db, "U-rollback", "30")

    ledger_service.pay(db, user.id, Decimal("30"), None)
    db.rollback()
    db.refresh(user)

    assert user.balance == Decimal("30.00")
    assert db.query(LedgerTransaction).count() == 0


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
def test_deposit_rejects_non_positive_amounts(db: Session, amount: Decimal) -> None:
    user = add_user(db, "U-bad-deposit", "0")

    with pytest.raises(InvalidAmountError):
        ledger_service.deposit_funds(db, user.id, amount)

    db.refresh(user)
    assert user.balance == Decimal("0.00")
    assert ledger_service.list_transactions(db, user.id) == []


def test_deposit_funds_commits_and_returns_user(db: Session) -> None:
    user = add_user(db, "U-topup", "-5")

    updated = ledger_service.deposit_funds(db, user.id, Decimal("50"))

    assert updated.balance == Decimal("45.00")
    assert ledger_service.reconstruct_balance(db, user.id) == Decimal("50.00")


def test_unknown_user_is_not_found(db: Session) -> None:
    with pytest.raises(NotFoundError):
        ledger_service.pay(db, 999, Decimal("10"), None)
