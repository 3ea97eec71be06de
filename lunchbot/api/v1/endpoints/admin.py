"""Admin endpoints: ordering settings, menus, balances, orders and settlement."""

import logging
from datetime import date, datetime

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.orm import Session

from lunchbot.api.errors import raise_http_error
from lunchbot.core.config import settings
from lunchbot.core.security import require_admin
from lunchbot.db.session import get_db
from lunchbot.models.order import Order
from lunchbot.schemas.menu import DailyMenuReplaceRequest, MenuItemRead
from lunchbot.schemas.order import OrderLineRead, OrderRead
from lunchbot.schemas.settings import OrderingPolicy, SettingsResponse, SettingsUpdateRequest
from lunchbot.schemas.settlement import SettlementResult, SettlementRunRequest
from lunchbot.schemas.user import AdminFlagUpdate, DepositRequest, TransactionRead, UserRead
from lunchbot.services import ledger_service, menu_service, order_service, settlement_service, user_service
from lunchbot.services.errors import NotFoundError, OrderingError
from lunchbot.services.notifications import NotificationGateway, get_notification_gateway
from lunchbot.services.settings_service import parse_hhmm_time, resolve_ordering_policy, save_ordering_settings
from lunchbot.utils.time import local_now

logger = logging.getLogger(__name__)

router: APIRouter = APIRouter(dependencies=[Depends(require_admin)])


def _settings_response(policy: OrderingPolicy) -> SettingsResponse:
    return SettingsResponse(
        deadline_time=policy.deadline_label,
        combo_surcharge=policy.combo_surcharge,
        drinks=list(policy.drinks),
        operating_timezone=settings.operating_timezone,
    )


def _order_read(order: Order) -> OrderRead:
    return OrderRead(
        id=order.id,
        user_id=order.user_id,
        display_name=order.user.display_name if order.user is not None else None,
        order_for_date=order.order_for_date,
        total_amount=order.total_amount,
        status=order.status,
        created_at=order.created_at,
        items=[OrderLineRead.model_validate(line) for line in order.items],
        description=", ".join(line.describe() for line in order.items),
    )


@router.get("/settings", response_model=SettingsResponse)
def read_settings(db: Session = Depends(get_db)) -> SettingsResponse:
    return _settings_response(resolve_ordering_policy(db))


@router.put("/settings", response_model=SettingsResponse)
def update_settings(payload: SettingsUpdateRequest, db: Session = Depends(get_db)) -> SettingsResponse:
    policy: OrderingPolicy = save_ordering_settings(
        db,
        deadline_time=parse_hhmm_time(payload.deadline_time) if payload.deadline_time else None,
        combo_surcharge=payload.combo_surcharge,
    )
    return _settings_response(policy)


@router.get("/daily-menu", response_model=list[MenuItemRead])
def read_daily_menu(
    menu_date: date = Query(alias="date"),
    db: Session = Depends(get_db),
) -> list[MenuItemRead]:
    return [MenuItemRead.model_validate(item) for item in menu_service.list_menu_items_for_date(db, menu_date)]


@router.put("/daily-menu", response_model=list[MenuItemRead])
def replace_daily_menu(payload: DailyMenuReplaceRequest, db: Session = Depends(get_db)) -> list[MenuItemRead]:
    items = menu_service.replace_menu_for_date(db, payload.date, payload.items)
    return [MenuItemRead.model_validate(item) for item in items]


@router.get("/users", response_model=list[UserRead])
def list_users(db: Session = Depends(get_db)) -> list[UserRead]:
    return [UserRead.model_validate(user) for user in user_service.list_users(db)]


@router.post("/users/{user_id}/deposit", response_model=UserRead)
def deposit(user_id: int, payload: DepositRequest, db: Session = Depends(get_db)) -> UserRead:
    try:
        user = ledger_service.deposit_funds(db, user_id, payload.amount)
    except OrderingError as exc:
        raise_http_error(exc)
    return UserRead.model_validate(user)


@router.put("/users/{user_id}/admin", response_model=UserRead)
def update_admin_flag(user_id: int, payload: AdminFlagUpdate, db: Session = Depends(get_db)) -> UserRead:
    try:
        user = user_service.set_admin_flag(db, user_id, payload.is_admin)
    except OrderingError as exc:
        raise_http_error(exc)
    return UserRead.model_validate(user)


@router.get("/users/{user_id}/transactions", response_model=list[TransactionRead])
def list_transactions(user_id: int, db: Session = Depends(get_db)) -> list[TransactionRead]:
    if user_service.get_user_by_id(db, user_id) is None:
        raise_http_error(NotFoundError("User not found."))
    return [TransactionRead.model_validate(tx) for tx in ledger_service.list_transactions(db, user_id)]


@router.get("/orders", response_model=list[OrderRead])
def list_orders(
    order_date: date = Query(alias="date"),
    db: Session = Depends(get_db),
) -> list[OrderRead]:
    return [_order_read(order) for order in order_service.list_orders_for_date(db, order_date)]


@router.post("/settlements", response_model=SettlementResult)
def run_settlement(
    response: Response,
    payload: SettlementRunRequest | None = Body(default=None),
    db: Session = Depends(get_db),
    gateway: NotificationGateway = Depends(get_notification_gateway),
    now: datetime = Depends(local_now),
) -> SettlementResult:
    request = payload or SettlementRunRequest()
    target: date = request.date or now.date()
    logger.info("[SETTLEMENT] Admin API settlement requested for %s", target)
    result = settlement_service.settle(
        db,
        target,
        gateway,
        require_pending_orders=request.require_pending_orders,
    )
    if result.status == "failed":
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return result
