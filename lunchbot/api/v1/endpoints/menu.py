"""Public daily menu endpoint."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lunchbot.db.session import get_db
from lunchbot.schemas.menu import MenuItemRead
from lunchbot.services.menu_service import list_menu_items_for_date
from lunchbot.utils.time import local_today

router: APIRouter = APIRouter()


@router.get("", response_model=list[MenuItemRead])
def read_menu(
    menu_date: date | None = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
) -> list[MenuItemRead]:
    target: date = menu_date or local_today()
    return [MenuItemRead.model_validate(item) for item in list_menu_items_for_date(db, target)]
