"""Translate domain errors into HTTP responses."""

from typing import NoReturn

from fastapi import HTTPException, status

from lunchbot.services.errors import (
    ForbiddenError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
    OrderingError,
    PastDeadlineError,
)

STATUS_CODES: dict[type[OrderingError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    InvalidStateError: status.HTTP_409_CONFLICT,
    PastDeadlineError: status.HTTP_403_FORBIDDEN,
    InvalidAmountError: status.HTTP_400_BAD_REQUEST,
}


def raise_http_error(exc: OrderingError) -> NoReturn:
    status_code: int = STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    raise HTTPException(status_code=status_code, detail=exc.detail) from exc
