"""Chat command handlers: one function per command, each returning reply messages."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from lunchbot.models import User
from lunchbot.schemas.chat import (
    CancelOrderCommand,
    ChatCommand,
    ChatReply,
    CheckBalanceCommand,
    ChooseCancelDateCommand,
    ChooseDateCommand,
    FollowCommand,
    OrderCommand,
    PostbackAction,
    SelectDrinkCommand,
    SettleCommand,
    ShowCancellableOrdersCommand,
    ShowMenuCommand,
)
from lunchbot.schemas.order import NeedsDrinkSelection, OrderPlaced
from lunchbot.schemas.settings import OrderingPolicy
from lunchbot.services import menu_service, order_service, settlement_service
from lunchbot.services.chat_commands import postback_data
from lunchbot.services.errors import OrderingError, PastDeadlineError
from lunchbot.services.notifications import NotificationGateway
from lunchbot.services.order_service import order_price
from lunchbot.services.settings_service import resolve_ordering_policy
from lunchbot.services.user_service import ensure_user, require_user_by_line_id
from lunchbot.utils.money import format_amount

logger = logging.getLogger(__name__)

WEEKDAYS: list[str] = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
ORDERABLE_DAYS: int = 5


def _day_label(target: date, today: date) -> str:
    weekday = WEEKDAYS[target.weekday()]
    if target == today:
        return f"Today ({weekday})"
    if target == today + timedelta(days=1):
        return f"Tomorrow ({weekday})"
    return f"{target.month}/{target.day} ({weekday})"


class ChatContext:
    """Per-event state handed to every handler."""

    def __init__(self, db: Session, gateway: NotificationGateway, line_user_id: str, now: datetime) -> None:
        self.db = db
        self.gateway = gateway
        self.line_user_id = line_user_id
        self.now = now
        self._policy: OrderingPolicy | None = None

    @property
    def policy(self) -> OrderingPolicy:
        if self._policy is None:
            self._policy = resolve_ordering_policy(self.db)
        return self._policy

    def user(self) -> User:
        return require_user_by_line_id(self.db, self.line_user_id)


def handle_follow(ctx: ChatContext, command: FollowCommand) -> list[ChatReply]:
    display_name = ctx.gateway.get_display_name(ctx.line_user_id) or "friend"
    user, created = ensure_user(ctx.db, ctx.line_user_id, display_name)
    if not created:
        return []
    return [ChatReply(text=f"Welcome {user.display_name}! You are now registered for lunch ordering.")]


def handle_choose_date(ctx: ChatContext, command: ChooseDateCommand) -> list[ChatReply]:
    today = ctx.now.date()
    actions = []
    for offset in range(ORDERABLE_DAYS):
        target = today + timedelta(days=offset)
        actions.append(
            PostbackAction(label=_day_label(target, today), data=postback_data("select_date", date=target.isoformat()))
        )
    return [ChatReply(text="Which day would you like to order for?", actions=actions)]


def handle_show_menu(ctx: ChatContext, command: ShowMenuCommand) -> list[ChatReply]:
    items = menu_service.list_menu_items_for_date(ctx.db, command.date)
    if not items:
        return [ChatReply(text=f"Sorry, no menu has been published for {command.date.isoformat()} yet.")]

    surcharge = ctx.policy.combo_surcharge
    lines: list[str] = [f"Menu for {command.date.isoformat()}:"]
    actions: list[PostbackAction] = []
    for item in items:
        single_price = format_amount(order_price(item, False, surcharge))
        if item.is_combo_eligible:
            combo_price = format_amount(order_price(item, True, surcharge))
            lines.append(f"{item.display_order}. {item.name} - single {single_price} / combo {combo_price}")
            actions.append(
                PostbackAction(
                    label=f"{item.name} ({single_price})",
                    data=postback_data("order", menu_item_id=item.id, is_combo=False),
                )
            )
            actions.append(
                PostbackAction(
                    label=f"{item.name} combo ({combo_price})",
                    data=postback_data("order", menu_item_id=item.id, is_combo=True),
                )
            )
        else:
            lines.append(f"{item.display_order}. {item.name} - {single_price}")
            actions.append(
                PostbackAction(
                    label=f"{item.name} ({single_price})",
                    data=postback_data("order", menu_item_id=item.id, is_combo=False),
                )
            )
    return [ChatReply(text="\n".join(lines), actions=actions)]


def _place(ctx: ChatContext, menu_item_id: int, is_combo: bool, drink: str | None) -> list[ChatReply]:
    result = order_service.place_order(
        ctx.db,
        user=ctx.user(),
        menu_item_id=menu_item_id,
        is_combo=is_combo,
        selected_drink=drink,
        policy=ctx.policy,
        now=ctx.now,
    )
    if isinstance(result, NeedsDrinkSelection):
        actions = [
            PostbackAction(label=name, data=postback_data("select_drink", menu_item_id=result.menu_item_id, drink=name))
            for name in result.drinks
        ]
        return [ChatReply(text=f"Please choose the drink for your {result.item_name} combo.", actions=actions)]
    return [ChatReply(text=_placed_text(result))]


def _placed_text(result: OrderPlaced) -> str:
    text = f"Ordered \"{result.item_name}\" for {result.order_for_date.isoformat()}!"
    if result.is_combo:
        text += f" (combo: {result.selected_drink})"
    text += f"\nAmount: {format_amount(result.total_amount)}\nRemaining balance: {format_amount(result.balance)}"
    if result.balance_negative:
        text += (
            "\n\nReminder: your balance is negative. Please top up before the ordering deadline "
            f"({result.deadline_time}), otherwise your order will be cancelled at settlement."
        )
    return text


def handle_order(ctx: ChatContext, command: OrderCommand) -> list[ChatReply]:
    return _place(ctx, command.menu_item_id, command.is_combo, None)


def handle_select_drink(ctx: ChatContext, command: SelectDrinkCommand) -> list[ChatReply]:
    return _place(ctx, command.menu_item_id, True, command.drink)


def handle_check_balance(ctx: ChatContext, command: CheckBalanceCommand) -> list[ChatReply]:
    user = ctx.user()
    return [ChatReply(text=f"Your current balance is {format_amount(user.balance)}.")]


def handle_choose_cancel_date(ctx: ChatContext, command: ChooseCancelDateCommand) -> list[ChatReply]:
    today = ctx.now.date()
    rows = order_service.list_cancellable_dates(ctx.db, ctx.user(), today)
    if not rows:
        return [
            ChatReply(
                text="You have no orders that can be cancelled.\n(Only orders that are still 'preparing' can be cancelled.)"
            )
        ]
    actions = [
        PostbackAction(
            label=f"{_day_label(row.order_for_date, today)} - {row.order_count} ({format_amount(row.total_amount)})",
            data=postback_data("cancel_select_date", date=row.order_for_date.isoformat()),
        )
        for row in rows
    ]
    return [
        ChatReply(
            text=(
                "Choose the date of the order to cancel.\n"
                f"Orders for today can only be cancelled before {ctx.policy.deadline_label}."
            ),
            actions=actions,
        )
    ]


def handle_show_cancellable_orders(ctx: ChatContext, command: ShowCancellableOrdersCommand) -> list[ChatReply]:
    user = ctx.user()
    order_service.ensure_window_open(command.date, ctx.policy, ctx.now, action="cancel")
    orders = order_service.list_preparing_orders(ctx.db, user, command.date)
    if not orders:
        return [ChatReply(text="There are no cancellable orders for that date.")]

    actions = [
        PostbackAction(
            label=f"{', '.join(line.describe() for line in order.items)} ({format_amount(order.total_amount)})",
            data=postback_data("cancel_order", order_id=order.id),
        )
        for order in orders
    ]
    actions.append(PostbackAction(label="Choose another date", data=postback_data("choose_cancel_date")))
    return [
        ChatReply(
            text=f"{command.date.isoformat()}: found {len(orders)} cancellable order(s).",
            actions=actions,
        )
    ]


def handle_cancel_order(ctx: ChatContext, command: CancelOrderCommand) -> list[ChatReply]:
    result = order_service.cancel_order(
        ctx.db,
        user=ctx.user(),
        order_id=command.order_id,
        policy=ctx.policy,
        now=ctx.now,
    )
    return [
        ChatReply(
            text=(
                "Order cancelled!\n"
                f"Order number: {result.order_id}\n"
                f"Refund: {format_amount(result.refunded_amount)}\n"
                f"Current balance: {format_amount(result.balance)}"
            )
        )
    ]


def handle_settle(ctx: ChatContext, command: SettleCommand) -> list[ChatReply]:
    user = ctx.user()
    if not user.is_admin:
        return [ChatReply(text="You do not have permission to do this.")]
    logger.info("[SETTLEMENT] Manual settlement requested by admin user_id=%s", user.id)
    result = settlement_service.settle(ctx.db, ctx.now.date(), ctx.gateway)
    return [ChatReply(text="Settlement command received."), ChatReply(text=result.message)]


HANDLERS: dict[type, Callable[[ChatContext, ChatCommand], list[ChatReply]]] = {
    FollowCommand: handle_follow,
    ChooseDateCommand: handle_choose_date,
    ShowMenuCommand: handle_show_menu,
    OrderCommand: handle_order,
    SelectDrinkCommand: handle_select_drink,
    CheckBalanceCommand: handle_check_balance,
    ChooseCancelDateCommand: handle_choose_cancel_date,
    ShowCancellableOrdersCommand: handle_show_cancellable_orders,
    CancelOrderCommand: handle_cancel_order,
    SettleCommand: handle_settle,
}

FAILURE_PREFIX: dict[type, str] = {
    OrderCommand: "Order failed: ",
    SelectDrinkCommand: "Order failed: ",
    CancelOrderCommand: "Cancellation failed: ",
}


def handle_command(
    db: Session,
    gateway: NotificationGateway,
    line_user_id: str,
    command: ChatCommand,
    now: datetime,
) -> list[ChatReply]:
    """Run one command; domain errors become a reply explaining the reason."""
    ctx = ChatContext(db, gateway, line_user_id, now)
    handler = HANDLERS[type(command)]
    try:
        return handler(ctx, command)
    except PastDeadlineError as exc:
        return [ChatReply(text=exc.detail)]
    except OrderingError as exc:
        return [ChatReply(text=f"{FAILURE_PREFIX.get(type(command), '')}{exc.detail}")]
    except Exception:
        db.rollback()
        logger.exception("[WEBHOOK] Unexpected error handling %s for %s", command.action, line_user_id)
        return [ChatReply(text="Something went wrong. Please try again later.")]
