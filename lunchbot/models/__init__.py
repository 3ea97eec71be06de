"""Application models package."""

from lunchbot.models.app_setting import AppSetting
from lunchbot.models.ledger import LedgerTransaction
from lunchbot.models.menu import MenuItem
from lunchbot.models.order import Order, OrderItem
from lunchbot.models.settlement import DailySettlement
from lunchbot.models.user import User

__all__ = [
    "User", "MenuItem", "Order", "OrderItem", "LedgerTransaction", "AppSetting", "DailySettlement",
]
