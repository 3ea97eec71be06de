"""Order API schemas and order operation results."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class OrderPlaced(BaseModel):
    kind: Literal["placed"] = "placed"
    order_id: int
    order_for_date: date
    item_name: str
    is_combo: bool
    selected_drink: str | None
    total_amount: Decimal
    balance: Decimal
    balance_negative: bool
    deadline_time: str


class NeedsDrinkSelection(BaseModel):
    """Combo requested without a drink; the caller must ask for one and retry."""

    kind: Literal["needs_drink_selection"] = "needs_drink_selection"
    menu_item_id: int
    item_name: str
    drinks: list[str]


class OrderCancelled(BaseModel):
    order_id: int
    refunded_amount: Decimal
    balance: Decimal


class OrderLineRead(BaseModel):
    item_name: str
    price_per_item: Decimal
    quantity: int
    is_combo: bool
    selected_drink: str | None

    model_config = ConfigDict(from_attributes=True)


class OrderRead(BaseModel):
    id: int
    user_id: int
    display_name: str | None = None
    order_for_date: date
    total_amount: Decimal
    status: str
    created_at: datetime
    items: list[OrderLineRead] = Field(default_factory=list)
    description: str = ""

    model_config = ConfigDict(from_attributes=True)


class CancellableDate(BaseModel):
    order_for_date: date
    order_count: int
    total_amount: Decimal
