"""Ordering configuration schemas."""

from datetime import time
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OrderingPolicy(BaseModel):
    """Configuration snapshot resolved once per order/cancel/settle call."""

    deadline_time: time
    combo_surcharge: Decimal
    drinks: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def deadline_label(self) -> str:
        return self.deadline_time.strftime("%H:%M")


class SettingsResponse(BaseModel):
    deadline_time: str
    combo_surcharge: Decimal
    drinks: list[str]
    operating_timezone: str


class SettingsUpdateRequest(BaseModel):
    deadline_time: str | None = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    combo_surcharge: Decimal | None = Field(default=None, ge=0)

    @field_validator("deadline_time")
    @classmethod
    def _validate_clock(cls, value: str | None) -> str | None:
        if value is None:
            return value
        time.fromisoformat(value)
        return value
