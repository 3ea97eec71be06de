"""Daily menu helpers shared by the admin API and the chat handlers."""

import logging
from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from lunchbot.models.menu import MenuItem
from lunchbot.schemas.menu import MenuItemPayload

logger = logging.getLogger(__name__)


def list_menu_items_for_date(db: Session, menu_date: date) -> list[MenuItem]:
    """Return the day's dishes in display order; empty when nothing is published."""
    return list(
        db.scalars(
            select(MenuItem)
            .where(MenuItem.menu_date == menu_date)
            .order_by(MenuItem.display_order.asc(), MenuItem.id.asc())
        ).all()
    )


def replace_menu_for_date(db: Session, menu_date: date, items: list[MenuItemPayload]) -> list[MenuItem]:
    """Delete and reinsert a day's menu in one transaction.

    Existing orders keep their own name/price snapshot, so they are unaffected.
    """
    try:
        db.execute(delete(MenuItem).where(MenuItem.menu_date == menu_date))
        for index, item in enumerate(items, start=1):
            db.add(
                MenuItem(
                    menu_date=menu_date,
                    name=item.name.strip(),
                    price=item.price,
                    is_combo_eligible=item.is_combo_eligible,
                    display_order=item.display_order or index,
                )
            )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("[MENU] Replaced menu for %s with %s items", menu_date, len(items))
    return list_menu_items_for_date(db, menu_date)
