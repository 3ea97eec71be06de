"""Schema exports."""

from lunchbot.schemas.auth import LoginRequest, TokenResponse
from lunchbot.schemas.menu import DailyMenuReplaceRequest, MenuItemPayload, MenuItemRead
from lunchbot.schemas.order import (
    CancellableDate,
    NeedsDrinkSelection,
    OrderCancelled,
    OrderLineRead,
    OrderPlaced,
    OrderRead,
)
from lunchbot.schemas.settings import OrderingPolicy, SettingsResponse, SettingsUpdateRequest
from lunchbot.schemas.settlement import SettlementReport, SettlementResult, SettlementRunRequest
from lunchbot.schemas.user import DepositRequest, TransactionRead, UserRead

__all__ = [
    "LoginRequest",
    "TokenResponse",
    "DailyMenuReplaceRequest",
    "MenuItemPayload",
    "MenuItemRead",
    "CancellableDate",
    "NeedsDrinkSelection",
    "OrderCancelled",
    "OrderLineRead",
    "OrderPlaced",
    "OrderRead",
    "OrderingPolicy",
    "SettingsResponse",
    "SettingsUpdateRequest",
    "SettlementReport",
    "SettlementResult",
    "SettlementRunRequest",
    "DepositRequest",
    "TransactionRead",
    "UserRead",
]
