"""Daily settlement tests."""

from datetime import timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from conftest import TODAY, RecordingGateway, add_menu_item, add_user, at, make_policy
from lunchbot.models import DailySettlement, LedgerTransaction, Order, User
from lunchbot.services import settlement_service
from lunchbot.services.ledger_service import deposit_funds, reconstruct_balance
from lunchbot.services.order_service import place_order
from lunchbot.services.order_status import CANCELLED_BY_SYSTEM, CANCELLED_BY_USER, FINISHED, PREPARING
from lunchbot.services.settlement_service import build_report, settle


def _order(db: Session, user: User, item, *, is_combo: bool = False, drink: str | None = None) -> int:
    result = place_order(
        db,
        user=user,
        menu_item_id=item.id,
        is_combo=is_combo,
        selected_drink=drink,
        policy=make_policy(),
        now=at(8, 0),
    )
    return result.order_id


def test_settle_finishes_orders_and_builds_report(db: Session) -> None:
    alice = add_user(db, "U-alice", "500")
    bob = add_user(db, "U-bob", "500")
    dish_a = add_menu_item(db, "A", "80", combo=True)
    dish_b = add_menu_item(db, "B", "70")
    _order(db, alice, dish_a, is_combo=True, drink="green tea")
    _order(db, bob, dish_a)
    _order(db, bob, dish_b)

    result = settle(db, TODAY)

    assert result.status == "settled"
    report = result.report
    assert report.item("A").count == 2
    assert report.item("A").combo_count == 1
    assert report.item("A").drinks == {"green tea": 1}
    assert report.item("B").count == 1
    assert report.drink_counts == {"green tea": 1}
    assert report.drink_count == 1
    assert report.order_count == 3
    assert report.total_amount == Decimal("80") + Decimal("65") + Decimal("70")
    assert {order.status for order in db.query(Order).all()} == {FINISHED}
    assert db.query(DailySettlement).filter(DailySettlement.settlement_date == TODAY).count() == 1
    assert sorted(notice.line_user_id for notice in result.notices) == ["U-alice", "U-bob"]


def test_settle_twice_is_idempotent(db: Session) -> None:
    user = add_user(db, "U-twice", "100")
    item = add_menu_item(db, "Bento", "50")
    _order(db, user, item)

    first = settle(db, TODAY)
    transactions_after_first = db.query(LedgerTransaction).count()
    second = settle(db, TODAY)

    assert first.status == "settled"
    assert second.status == "already_settled"
    assert second.report is None
    assert db.query(LedgerTransaction).count() == transactions_after_first
    assert db.query(DailySettlement).count() == 1


def test_negative_balance_orders_are_cancelled_and_refunded(db: Session) -> None:
    debtor = add_user(db, "U-debtor", "-5")
    payer = add_user(db, "U-payer", "100")
    item = add_menu_item(db, "Bento", "50")
    debtor_order_id = _order(db, debtor, item)
    payer_order_id = _order(db, payer, item)

    result = settle(db, TODAY)

    db.refresh(debtor)
    assert db.get(Order, debtor_order_id).status == CANCELLED_BY_SYSTEM
    assert db.get(Order, payer_order_id).status == FINISHED
    assert debtor.balance == Decimal("-5.00")
    refunds = (
        db.query(LedgerTransaction)
        .filter(LedgerTransaction.user_id == debtor.id, LedgerTransaction.type == "refund")
        .all()
    )
    assert len(refunds) == 1
    assert refunds[0].amount == Decimal("50.00")
    assert [swept.line_user_id for swept in result.swept_users] == ["U-debtor"]
    assert result.swept_users[0].cancelled_order_ids == [debtor_order_id]
    assert result.report.order_count == 1


def test_debtor_order_is_cancelled_and_refunded_back_to_positive(db: Session) -> None:
    debtor = add_user(db, "U-sweep", "0")
    deposit_funds(db, debtor.id, Decimal("45"))
    item = add_menu_item(db, "Bento", "50")
    order_id = _order(db, debtor, item)
    db.refresh(debtor)
    assert debtor.balance == Decimal("-5.00")

    result = settle(db, TODAY)

    db.refresh(debtor)
    assert result.status == "settled"
    assert db.get(Order, order_id).status == CANCELLED_BY_SYSTEM
    assert debtor.balance == Decimal("45.00")
    refunds = db.query(LedgerTransaction).filter(LedgerTransaction.type == "refund").all()
    assert [(tx.amount, tx.related_order_id) for tx in refunds] == [(Decimal("50.00"), order_id)]
    assert reconstruct_balance(db, debtor.id) == debtor.balance
    assert result.report.order_count == 0


def test_sweep_ignores_orders_for_other_dates_and_other_statuses(db: Session) -> None:
    debtor = add_user(db, "U-other", "0")
    today_item = add_menu_item(db, "Bento", "50")
    tomorrow_item = add_menu_item(db, "Bento", "50", menu_date=TODAY + timedelta(days=1))
    cancelled_id = _order(db, debtor, today_item)
    tomorrow_id = _order(db, debtor, tomorrow_item)
    today_id = _order(db, debtor, today_item)
    order = db.get(Order, cancelled_id)
    order.status = CANCELLED_BY_USER
    db.commit()

    settle(db, TODAY)

    assert db.get(Order, today_id).status == CANCELLED_BY_SYSTEM
    assert db.get(Order, tomorrow_id).status == PREPARING
    assert db.get(Order, cancelled_id).status == CANCELLED_BY_USER


def test_failure_mid_settlement_rolls_back_everything(db: Session, monkeypatch) -> None:
    debtor = add_user(db, "U-debtor", "0")
    payer = add_user(db, "U-payer", "100")
    item = add_menu_item(db, "Bento", "50")
    debtor_order_id = _order(db, debtor, item)
    payer_order_id = _order(db, payer, item)

    def broken_finish(db: Session, order: Order) -> None:
        raise RuntimeError("kitchen printer on fire")

    monkeypatch.setattr(settlement_service, "finish_order", broken_finish)

    result = settle(db, TODAY)

    db.refresh(debtor)
    assert result.status == "failed"
    assert db.get(Order, debtor_order_id).status == PREPARING
    assert db.get(Order, payer_order_id).status == PREPARING
    assert debtor.balance == Decimal("-50.00")
    assert db.query(LedgerTransaction).filter(LedgerTransaction.type == "refund").count() == 0
    assert db.query(DailySettlement).count() == 0

    monkeypatch.undo()
    retry = settle(db, TODAY)

    assert retry.status == "settled"
    assert db.get(Order, debtor_order_id).status == CANCELLED_BY_SYSTEM
    assert db.get(Order, payer_order_id).status == FINISHED


def test_concurrent_settlement_loses_on_unique_date(db: Session, monkeypatch) -> None:
    user = add_user(db, "U-racer", "100")
    item = add_menu_item(db, "Bento", "50")
    order_id = _order(db, user, item)
    db.add(DailySettlement(settlement_date=TODAY))
    db.commit()
    transactions_before = db.query(LedgerTransaction).count()

    real_lookup = settlement_service.get_settlement_record
    calls: list[int] = []

    def lookup_missing_first(db: Session, target_date):
        calls.append(1)
        if len(calls) == 1:
            return None
        return real_lookup(db, target_date)

    monkeypatch.setattr(settlement_service, "get_settlement_record", lookup_missing_first)

    result = settle(db, TODAY)

    assert result.status == "already_settled"
    assert result.report is None
    assert db.get(Order, order_id).status == PREPARING
    assert db.query(LedgerTransaction).count() == transactions_before
    assert db.query(DailySettlement).count() == 1


def test_nothing_to_settle_leaves_date_open(db: Session) -> None:
    result = settle(db, TODAY)

    assert result.status == "nothing_to_settle"
    assert db.query(DailySettlement).count() == 0


def test_empty_settlement_allowed_without_readiness_check(db: Session) -> None:
    result = settle(db, TODAY, require_pending_orders=False)

    assert result.status == "settled"
    assert result.report.order_count == 0
    assert "No orders" in result.report.render_text()


def test_notifications_are_sent_after_commit(db: Session) -> None:
    add_user(db, "U-admin", "0", is_admin=True)
    debtor = add_user(db, "U-late-payer", "-1")
    payer = add_user(db, "U-on-time", "100")
    item = add_menu_item(db, "Chicken rice", "80", combo=True)
    _order(db, debtor, item)
    _order(db, payer, item, is_combo=True, drink="milk tea")
    gateway = RecordingGateway()

    settle(db, TODAY, gateway)

    recipients = [to for to, _ in gateway.pushes]
    assert recipients == ["U-late-payer", "U-on-time"]
    assert "cancelled" in gateway.pushes[0][1]
    assert "Chicken rice (combo: milk tea)" in gateway.pushes[1][1]
    assert gateway.multicasts[0][0] == ["U-admin"]
    assert "Chicken rice: 1 (combo 1)" in gateway.multicasts[0][1]
    assert db.query(DailySettlement).one().is_broadcasted is True


def test_delivery_failures_do_not_undo_settlement(db: Session) -> None:
    add_user(db, "U-admin", "0", is_admin=True)
    user = add_user(db, "U-customer", "100")
    item = add_menu_item(db, "Bento", "50")
    order_id = _order(db, user, item)
    gateway = RecordingGateway(fail_push=True, fail_multicast=True)

    result = settle(db, TODAY, gateway)

    assert result.status == "settled"
    assert db.get(Order, order_id).status == FINISHED
    record = db.query(DailySettlement).one()
    assert record.is_broadcasted is False
    assert "sent to all admins" not in result.message


def test_message_mentions_admins_only_after_broadcast(db: Session) -> None:
    user = add_user(db, "U-customer", "100")
    item = add_menu_item(db, "Bento", "50")
    _order(db, user, item)

    without_admins = settle(db, TODAY, RecordingGateway())

    assert without_admins.status == "settled"
    assert without_admins.message == f"Settlement for {TODAY.isoformat()} complete."

    add_user(db, "U-admin", "0", is_admin=True)
    tomorrow = TODAY + timedelta(days=1)
    tomorrow_item = add_menu_item(db, "Bento", "50", menu_date=tomorrow)
    _order(db, user, tomorrow_item)

    with_admin = settle(db, tomorrow, RecordingGateway())

    assert with_admin.status == "settled"
    assert with_admin.message.endswith("The report has been sent to all admins.")


def test_message_without_gateway_stays_neutral(db: Session) -> None:
    user = add_user(db, "U-quiet", "100")
    item = add_menu_item(db, "Bento", "50")
    _order(db, user, item)

    result = settle(db, TODAY)

    assert result.message == f"Settlement for {TODAY.isoformat()} complete."


def test_report_for_no_orders() -> None:
    report = build_report(TODAY, [])

    assert report.order_count == 0
    assert report.total_amount == Decimal("0")
    assert report.items == []
