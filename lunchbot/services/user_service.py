"""User service operations."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from lunchbot.models.user import User
from lunchbot.services.errors import NotFoundError

logger = logging.getLogger(__name__)


def get_user_by_line_id(db: Session, line_user_id: str) -> User | None:
    return db.scalar(select(User).where(User.line_user_id == line_user_id).limit(1))


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def require_user_by_line_id(db: Session, line_user_id: str) -> User:
    user = get_user_by_line_id(db, line_user_id)
    if user is None:
        raise NotFoundError("Account not found. Please add the bot as a friend again.")
    return user


def ensure_user(db: Session, line_user_id: str, display_name: str) -> tuple[User, bool]:
    """Register a chat user on first contact.

    Returns:
        tuple[User, bool]: the user and whether it was created by this call.
    """
    existing = get_user_by_line_id(db, line_user_id)
    if existing is not None:
        return existing, False

    user = User(line_user_id=line_user_id, display_name=display_name, is_admin=False)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("[USERS] Registered user_id=%s (%s)", user.id, display_name)
    return user, True


def list_users(db: Session) -> list[User]:
    return list(db.scalars(select(User).order_by(User.id)).all())


def list_admin_line_ids(db: Session) -> list[str]:
    return list(db.scalars(select(User.line_user_id).where(User.is_admin.is_(True)).order_by(User.id)).all())


def set_admin_flag(db: Session, user_id: int, is_admin: bool) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found.")
    user.is_admin = is_admin
    db.commit()
    db.refresh(user)
    return user
