"""Scheduler-facing settlement trigger."""

import logging
from datetime import date, datetime

from fastapi import APIRouter, Body, Depends, Response, status
from sqlalchemy.orm import Session

from lunchbot.core.security import require_settlement_secret
from lunchbot.db.session import get_db
from lunchbot.schemas.settlement import SettlementResult, SettlementRunRequest
from lunchbot.services.notifications import NotificationGateway, get_notification_gateway
from lunchbot.services.settlement_service import settle
from lunchbot.utils.time import local_now

logger = logging.getLogger(__name__)

router: APIRouter = APIRouter(dependencies=[Depends(require_settlement_secret)])


@router.post("/run", response_model=SettlementResult)
def run_scheduled_settlement(
    response: Response,
    payload: SettlementRunRequest | None = Body(default=None),
    db: Session = Depends(get_db),
    gateway: NotificationGateway = Depends(get_notification_gateway),
    now: datetime = Depends(local_now),
) -> SettlementResult:
    """Settle the given date (today by default); repeated calls are harmless."""
    request = payload or SettlementRunRequest()
    target: date = request.date or now.date()
    logger.info("[SETTLEMENT] Scheduled settlement triggered for %s", target)
    result = settle(db, target, gateway, require_pending_orders=request.require_pending_orders)
    if result.status == "failed":
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return result
