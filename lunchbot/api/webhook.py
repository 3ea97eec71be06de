"""LINE Messaging API webhook."""

import json
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from lunchbot.core.config import settings
from lunchbot.core.security import verify_line_signature
from lunchbot.db import session as db_session
from lunchbot.schemas.chat import ChatReply
from lunchbot.services.chat_commands import parse_event
from lunchbot.services.chat_service import handle_command
from lunchbot.services.notifications import NotificationGateway, get_notification_gateway
from lunchbot.utils.time import local_now

logger = logging.getLogger(__name__)

router: APIRouter = APIRouter()


def process_event(event: dict[str, Any], gateway: NotificationGateway, now: datetime) -> list[ChatReply]:
    """Handle one webhook event in its own session and send the replies."""
    line_user_id = event.get("source", {}).get("userId")
    if not line_user_id:
        return []
    command = parse_event(event)
    if command is None:
        return []

    with db_session.SessionLocal() as db:
        replies = handle_command(db, gateway, line_user_id, command, now)

    reply_token = event.get("replyToken")
    if replies and reply_token:
        try:
            gateway.reply(reply_token, replies)
        except Exception:
            logger.exception("[WEBHOOK] Reply to %s failed", line_user_id)
    return replies


def process_events(events: list[dict[str, Any]], gateway: NotificationGateway, now: datetime) -> None:
    for event in events:
        process_event(event, gateway, now)


@router.post("/webhook")
async def line_webhook(
    request: Request,
    x_line_signature: str | None = Header(default=None),
    gateway: NotificationGateway = Depends(get_notification_gateway),
    now: datetime = Depends(local_now),
) -> dict[str, str]:
    if not settings.line_channel_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Webhook is not configured",
        )

    body: bytes = await request.body()
    if not verify_line_signature(settings.line_channel_secret, body, x_line_signature or ""):
        logger.warning("[WEBHOOK] Rejected request with invalid signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid signature",
        )

    try:
        payload: dict[str, Any] = json.loads(body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")

    events: list[dict[str, Any]] = payload.get("events", [])
    logger.info("[WEBHOOK] Received %s event(s)", len(events))
    await run_in_threadpool(process_events, events, gateway, now)
    return {"status": "ok"}
