"""Shared fixtures: file-backed SQLite sessions and a recording chat gateway."""

from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from lunchbot.db.base import Base
from lunchbot.models import MenuItem, User
from lunchbot.schemas.chat import ChatReply
from lunchbot.schemas.settings import OrderingPolicy
from lunchbot.services.notifications import NotificationGateway

TAIPEI = ZoneInfo("Asia/Taipei")
TODAY = date(2026, 3, 2)


def at(hour: int, minute: int = 0, day: date = TODAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=TAIPEI)


def make_policy(deadline_hour: int = 9, surcharge: str = "15") -> OrderingPolicy:
    return OrderingPolicy(
        deadline_time=time(deadline_hour, 0),
        combo_surcharge=Decimal(surcharge),
        drinks=("black tea", "green tea", "milk tea"),
    )


def add_user(db: Session, line_user_id: str, balance: str = "0", *, is_admin: bool = False) -> User:
    user = User(line_user_id=line_user_id, display_name=line_user_id, balance=Decimal(balance), is_admin=is_admin)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def add_menu_item(
    db: Session,
    name: str,
    price: str,
    *,
    menu_date: date = TODAY,
    combo: bool = False,
) -> MenuItem:
    item = MenuItem(menu_date=menu_date, name=name, price=Decimal(price), is_combo_eligible=combo, display_order=1)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


class RecordingGateway(NotificationGateway):
    """Captures every outbound message instead of sending it."""

    def __init__(self, fail_push: bool = False, fail_multicast: bool = False) -> None:
        self.fail_push = fail_push
        self.fail_multicast = fail_multicast
        self.replies: list[tuple[str, list[ChatReply]]] = []
        self.pushes: list[tuple[str, str]] = []
        self.multicasts: list[tuple[list[str], str]] = []
        self.display_names: dict[str, str] = {}

    def reply(self, reply_token: str, replies: list[ChatReply]) -> None:
        self.replies.append((reply_token, replies))

    def push(self, to: str, text: str) -> None:
        if self.fail_push:
            raise RuntimeError("push unavailable")
        self.pushes.append((to, text))

    def multicast(self, to: list[str], text: str) -> None:
        if self.fail_multicast:
            raise RuntimeError("multicast unavailable")
        self.multicasts.append((list(to), text))

    def get_display_name(self, line_user_id: str) -> str | None:
        return self.display_names.get(line_user_id)


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


@pytest.fixture
def session_factory(tmp_path: Path) -> sessionmaker:
    engine = _build_test_engine(tmp_path / "lunchbot_test.db")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory: sessionmaker) -> Session:
    session: Session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()
