"""Chat commands parsed from webhook events, and the replies produced for them.

Commands form a tagged union on ``action`` so the handlers never touch raw
postback strings.
"""

from datetime import date as dt_date
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class FollowCommand(BaseModel):
    action: Literal["follow"] = "follow"


class ChooseDateCommand(BaseModel):
    action: Literal["choose_date"] = "choose_date"


class ShowMenuCommand(BaseModel):
    action: Literal["select_date"] = "select_date"
    date: dt_date


class OrderCommand(BaseModel):
    action: Literal["order"] = "order"
    menu_item_id: int
    is_combo: bool = False


class SelectDrinkCommand(BaseModel):
    action: Literal["select_drink"] = "select_drink"
    menu_item_id: int
    drink: str = Field(min_length=1)


class CheckBalanceCommand(BaseModel):
    action: Literal["check_balance"] = "check_balance"


class ChooseCancelDateCommand(BaseModel):
    action: Literal["choose_cancel_date"] = "choose_cancel_date"


class ShowCancellableOrdersCommand(BaseModel):
    action: Literal["cancel_select_date"] = "cancel_select_date"
    date: dt_date


class CancelOrderCommand(BaseModel):
    action: Literal["cancel_order"] = "cancel_order"
    order_id: int


class SettleCommand(BaseModel):
    action: Literal["settle"] = "settle"


ChatCommand = Annotated[
    Union[
        FollowCommand,
        ChooseDateCommand,
        ShowMenuCommand,
        OrderCommand,
        SelectDrinkCommand,
        CheckBalanceCommand,
        ChooseCancelDateCommand,
        ShowCancellableOrdersCommand,
        CancelOrderCommand,
        SettleCommand,
    ],
    Field(discriminator="action"),
]


class PostbackAction(BaseModel):
    """Quick-reply button that sends ``data`` back as a postback."""

    label: str
    data: str


class ChatReply(BaseModel):
    text: str
    actions: list[PostbackAction] = Field(default_factory=list)
