"""Daily settlement marker model."""

from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from lunchbot.db.base import Base


class DailySettlement(Base):
    """One row per settled date; its presence closes the date."""

    __tablename__ = "daily_settlements"

    id: Mapped[int] = mapped_column(primary_key=True)
    settlement_date: Mapped[date] = mapped_column(Date, nullable=False, unique=True)
    is_broadcasted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
