"""End-of-day settlement.

``settle`` closes one date in a single transaction: users with a negative
balance have their ``preparing`` orders for the date cancelled and refunded,
every remaining ``preparing`` order is finished, and a ``daily_settlements``
row marks the date as done. Only after that transaction commits are the
users and admins notified; delivery failures are logged and never affect
the committed outcome.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from lunchbot.models import DailySettlement, Order, User
from lunchbot.schemas.settlement import (
    ItemSummary,
    SettlementReport,
    SettlementResult,
    SuccessNotice,
    SweptUser,
)
from lunchbot.services.notifications import NotificationGateway, deliver_multicast, deliver_push
from lunchbot.services.order_service import cancel_order_by_system, finish_order
from lunchbot.services.order_status import PREPARING
from lunchbot.services.user_service import list_admin_line_ids
from lunchbot.utils.money import format_amount
from lunchbot.utils.time import to_local

logger = logging.getLogger(__name__)


def get_settlement_record(db: Session, target_date: date) -> DailySettlement | None:
    return db.scalar(select(DailySettlement).where(DailySettlement.settlement_date == target_date).limit(1))


def _preparing_orders(db: Session, target_date: date, user_ids: list[int] | None = None) -> list[Order]:
    stmt = (
        select(Order)
        .options(selectinload(Order.items), selectinload(Order.user))
        .where(Order.order_for_date == target_date, Order.status == PREPARING)
        .order_by(Order.id.asc())
        .with_for_update()
    )
    if user_ids is not None:
        stmt = stmt.where(Order.user_id.in_(user_ids))
    return list(db.scalars(stmt).all())


def _sweep_negative_balances(db: Session, target_date: date) -> list[SweptUser]:
    negative_ids: list[int] = list(db.scalars(select(User.id).where(User.balance < 0)).all())
    if not negative_ids:
        return []

    swept: dict[int, SweptUser] = {}
    for order in _preparing_orders(db, target_date, negative_ids):
        cancel_order_by_system(db, order)
        entry = swept.get(order.user_id)
        if entry is None:
            entry = SweptUser(
                user_id=order.user_id,
                line_user_id=order.user.line_user_id,
                cancelled_order_ids=[],
                refunded_amount=Decimal("0"),
            )
            swept[order.user_id] = entry
        entry.cancelled_order_ids.append(order.id)
        entry.refunded_amount += Decimal(order.total_amount)
    return list(swept.values())


def _success_notices(db: Session, orders: list[Order]) -> list[SuccessNotice]:
    notices: dict[int, SuccessNotice] = {}
    for order in orders:
        notice = notices.get(order.user_id)
        if notice is None:
            db.refresh(order.user, attribute_names=["balance"])
            notice = SuccessNotice(
                user_id=order.user_id,
                line_user_id=order.user.line_user_id,
                items=[],
                balance=order.user.balance,
            )
            notices[order.user_id] = notice
        notice.items.extend(line.describe() for line in order.items)
    return list(notices.values())


def build_report(target_date: date, orders: list[Order]) -> SettlementReport:
    """Aggregate orders by dish, with combo drink choices counted per dish and overall."""
    report = SettlementReport(settlement_date=target_date)
    by_item: dict[str, ItemSummary] = {}
    for order in orders:
        report.order_count += 1
        report.total_amount += Decimal(order.total_amount)
        for line in order.items:
            summary = by_item.get(line.item_name)
            if summary is None:
                summary = ItemSummary(item_name=line.item_name)
                by_item[line.item_name] = summary
            summary.count += line.quantity
            if line.is_combo:
                summary.combo_count += line.quantity
            if line.selected_drink:
                summary.drinks[line.selected_drink] = summary.drinks.get(line.selected_drink, 0) + line.quantity
                report.drink_counts[line.selected_drink] = (
                    report.drink_counts.get(line.selected_drink, 0) + line.quantity
                )
    report.items = list(by_item.values())
    report.drink_count = sum(report.drink_counts.values())
    return report


def _already_settled(target_date: date, record: DailySettlement | None) -> SettlementResult:
    if record is not None:
        settled_at = to_local(record.created_at)
        message = f"Settlement for {target_date.isoformat()} already ran at {settled_at:%Y-%m-%d %H:%M}."
    else:
        message = f"Settlement for {target_date.isoformat()} already ran."
    return SettlementResult(
        status="already_settled",
        settlement_date=target_date,
        message=message,
        settled_at=record.created_at if record is not None else None,
    )


def settle(
    db: Session,
    target_date: date,
    gateway: NotificationGateway | None = None,
    *,
    require_pending_orders: bool = True,
) -> SettlementResult:
    """Settle ``target_date`` at most once; safe to call repeatedly."""
    try:
        record: DailySettlement | None = get_settlement_record(db, target_date)
        if record is not None:
            result = _already_settled(target_date, record)
            db.rollback()
            logger.info("[SETTLEMENT] %s already settled; nothing to do.", target_date)
            return result

        if require_pending_orders and not db.scalar(
            select(Order.id).where(Order.order_for_date == target_date, Order.status == PREPARING).limit(1)
        ):
            db.rollback()
            logger.info("[SETTLEMENT] %s has no preparing orders.", target_date)
            return SettlementResult(
                status="nothing_to_settle",
                settlement_date=target_date,
                message=f"There are no 'preparing' orders for {target_date.isoformat()} to settle.",
            )

        swept: list[SweptUser] = _sweep_negative_balances(db, target_date)
        remaining: list[Order] = _preparing_orders(db, target_date)
        notices: list[SuccessNotice] = _success_notices(db, remaining)
        report: SettlementReport = build_report(target_date, remaining)
        for order in remaining:
            finish_order(db, order)

        record = DailySettlement(settlement_date=target_date, is_broadcasted=False)
        db.add(record)
        db.flush()
        settled_at: datetime = record.created_at
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("[SETTLEMENT] Concurrent settlement for %s won the race; rolled back.", target_date)
        existing = get_settlement_record(db, target_date)
        if existing is None:
            logger.exception("[SETTLEMENT] Integrity failure while settling %s", target_date)
            return SettlementResult(
                status="failed",
                settlement_date=target_date,
                message="Settlement failed due to an internal error; check the server logs.",
            )
        return _already_settled(target_date, existing)
    except Exception:
        db.rollback()
        logger.exception("[SETTLEMENT] Settlement for %s failed; all changes rolled back.", target_date)
        return SettlementResult(
            status="failed",
            settlement_date=target_date,
            message="Settlement failed due to an internal error; check the server logs.",
        )

    logger.info(
        "[SETTLEMENT] %s settled: %s orders finished, %s users swept, total %s",
        target_date,
        report.order_count,
        len(swept),
        report.total_amount,
    )
    result = SettlementResult(
        status="settled",
        settlement_date=target_date,
        message=f"Settlement for {target_date.isoformat()} complete.",
        report=report,
        swept_users=swept,
        notices=notices,
        settled_at=settled_at,
    )
    if gateway is not None and notify_settlement(db, gateway, result):
        result.message += " The report has been sent to all admins."
    return result


def notify_settlement(db: Session, gateway: NotificationGateway, result: SettlementResult) -> bool:
    """Post-commit delivery phase; never raises. Returns whether the admin report went out."""
    day = result.settlement_date.isoformat()
    for swept in result.swept_users:
        deliver_push(
            gateway,
            swept.line_user_id,
            f"Sorry, your balance was negative at settlement, so your orders for {day} were cancelled "
            f"automatically. {format_amount(swept.refunded_amount)} has been refunded to your account.",
        )

    for notice in result.notices:
        deliver_push(
            gateway,
            notice.line_user_id,
            f"Your order for {day} is confirmed!\n"
            f"- Items: {', '.join(notice.items)}\n"
            f"- Your current balance is {format_amount(notice.balance)}.",
        )

    if result.report is None:
        return False
    try:
        admin_ids: list[str] = list_admin_line_ids(db)
    except SQLAlchemyError:
        logger.exception("[SETTLEMENT] Could not load admin recipients for %s report.", day)
        db.rollback()
        return False
    if not deliver_multicast(gateway, admin_ids, result.report.render_text()):
        return False

    try:
        record = get_settlement_record(db, result.settlement_date)
        if record is not None:
            record.is_broadcasted = True
            db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("[SETTLEMENT] Could not mark %s report as broadcast.", day)
    return True
