"""User and ledger schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class UserRead(BaseModel):
    id: int
    line_user_id: str
    display_name: str
    balance: Decimal
    is_admin: bool

    model_config = ConfigDict(from_attributes=True)


class DepositRequest(BaseModel):
    amount: Decimal = Field(gt=0)


class AdminFlagUpdate(BaseModel):
    is_admin: bool


class TransactionRead(BaseModel):
    id: int
    type: str
    amount: Decimal
    related_order_id: int | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
