"""Domain errors raised by ordering, cancellation and ledger services."""


class OrderingError(Exception):
    """Base class; ``detail`` is safe to show to the end user."""

    default_detail: str = "Operation failed."

    def __init__(self, detail: str | None = None) -> None:
        self.detail: str = detail or self.default_detail
        super().__init__(self.detail)


class NotFoundError(OrderingError):
    default_detail = "Not found."


class ForbiddenError(OrderingError):
    default_detail = "You do not have permission to change this order."


class InvalidStateError(OrderingError):
    default_detail = "The order can no longer be changed."


class PastDeadlineError(OrderingError):
    default_detail = "The ordering deadline has passed."


class InvalidAmountError(OrderingError):
    default_detail = "Amount must be greater than zero."
