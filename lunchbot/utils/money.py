"""Amount formatting for chat messages and reports."""

from decimal import ROUND_HALF_UP, Decimal


def format_amount(value: Decimal | int | float) -> str:
    """Render whole amounts without decimals (``65``) and others with two (``64.50``)."""
    amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if amount == amount.to_integral_value():
        return str(amount.quantize(Decimal("1")))
    return str(amount)
