"""Translate raw chat webhook events into typed commands."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import parse_qsl, urlencode

from pydantic import TypeAdapter, ValidationError

from lunchbot.schemas.chat import ChatCommand, FollowCommand

logger = logging.getLogger(__name__)

command_adapter: TypeAdapter = TypeAdapter(ChatCommand)

TEXT_COMMANDS: dict[str, str] = {
    "menu": "choose_date",
    "order": "choose_date",
    "菜單": "choose_date",
    "訂餐": "choose_date",
    "balance": "check_balance",
    "餘額": "check_balance",
    "查詢餘額": "check_balance",
    "cancel": "choose_cancel_date",
    "取消": "choose_cancel_date",
    "settle": "settle",
    "結算": "settle",
}


def postback_data(action: str, **params: Any) -> str:
    """Encode a command as postback data, the inverse of ``parse_postback``."""
    values: dict[str, str] = {"action": action}
    for key, value in params.items():
        if isinstance(value, bool):
            values[key] = "true" if value else "false"
        else:
            values[key] = str(value)
    return urlencode(values)


def parse_postback(data: str) -> ChatCommand | None:
    payload: dict[str, str] = dict(parse_qsl(data, keep_blank_values=True))
    if "action" not in payload:
        return None
    try:
        return command_adapter.validate_python(payload)
    except ValidationError:
        logger.warning("[WEBHOOK] Ignoring malformed postback: %s", data)
        return None


def parse_text(text: str) -> ChatCommand | None:
    action = TEXT_COMMANDS.get(text.strip().lower())
    if action is None:
        return None
    return command_adapter.validate_python({"action": action})


def parse_event(event: dict[str, Any]) -> ChatCommand | None:
    """Return the command carried by a webhook event, or None for events we ignore."""
    event_type = event.get("type")
    if event_type == "follow":
        return FollowCommand()
    if event_type == "postback":
        return parse_postback(str(event.get("postback", {}).get("data", "")))
    if event_type == "message":
        message = event.get("message", {})
        if message.get("type") != "text":
            return None
        return parse_text(str(message.get("text", "")))
    return None
