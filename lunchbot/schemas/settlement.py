"""Settlement result and report schemas."""

from datetime import date as dt_date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from lunchbot.utils.money import format_amount

SettlementStatus = Literal["already_settled", "nothing_to_settle", "settled", "failed"]


class ItemSummary(BaseModel):
    item_name: str
    count: int = 0
    combo_count: int = 0
    drinks: dict[str, int] = Field(default_factory=dict)


class SettlementReport(BaseModel):
    """Aggregate of the orders finished by one settlement."""

    settlement_date: dt_date
    items: list[ItemSummary] = Field(default_factory=list)
    drink_counts: dict[str, int] = Field(default_factory=dict)
    order_count: int = 0
    drink_count: int = 0
    total_amount: Decimal = Decimal("0")

    def item(self, item_name: str) -> ItemSummary | None:
        return next((summary for summary in self.items if summary.item_name == item_name), None)

    def render_text(self) -> str:
        day = self.settlement_date.isoformat()
        if self.order_count == 0:
            return f"--- {day} order report ---\n\nNo orders were settled for this date."

        lines: list[str] = [f"--- {day} order summary ---"]
        for summary in self.items:
            line = f"{summary.item_name}: {summary.count}"
            if summary.combo_count:
                line += f" (combo {summary.combo_count})"
            lines.append(line)

        lines.append("")
        lines.append("--- Drinks ---")
        if self.drink_counts:
            lines.extend(f"{drink}: {count}" for drink, count in self.drink_counts.items())
        else:
            lines.append("None")

        lines.append("")
        lines.append("--- Totals ---")
        lines.append(f"Orders: {self.order_count}")
        lines.append(f"Drinks: {self.drink_count}")
        lines.append(f"Amount: {format_amount(self.total_amount)}")
        return "\n".join(lines)


class SweptUser(BaseModel):
    """User whose orders were cancelled because of a negative balance."""

    user_id: int
    line_user_id: str
    cancelled_order_ids: list[int]
    refunded_amount: Decimal


class SuccessNotice(BaseModel):
    user_id: int
    line_user_id: str
    items: list[str]
    balance: Decimal


class SettlementResult(BaseModel):
    status: SettlementStatus
    settlement_date: dt_date
    message: str
    report: SettlementReport | None = None
    swept_users: list[SweptUser] = Field(default_factory=list)
    notices: list[SuccessNotice] = Field(default_factory=list)
    settled_at: datetime | None = None


class SettlementRunRequest(BaseModel):
    date: dt_date | None = None
    require_pending_orders: bool = True
