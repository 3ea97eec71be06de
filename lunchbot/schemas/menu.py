"""Daily menu API schemas."""

from datetime import date as dt_date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class MenuItemPayload(BaseModel):
    """Single dish in a day's menu upload."""

    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    is_combo_eligible: bool = False
    display_order: int = 0


class DailyMenuReplaceRequest(BaseModel):
    """Replace the whole menu for one date."""

    date: dt_date
    items: list[MenuItemPayload]


class MenuItemRead(BaseModel):
    id: int
    menu_date: dt_date
    name: str
    price: Decimal
    is_combo_eligible: bool
    display_order: int

    model_config = ConfigDict(from_attributes=True)
