"""Outbound chat delivery (reply, push, multicast).

Delivery is best-effort from the ordering core's point of view: callers use
``deliver_push``/``deliver_multicast``, which log and swallow failures so a
lost message never turns a committed payment, refund or settlement into an
error.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from lunchbot.core.config import settings
from lunchbot.schemas.chat import ChatReply

logger = logging.getLogger(__name__)

MAX_REPLY_MESSAGES: int = 5
MAX_QUICK_REPLY_ITEMS: int = 13
MAX_LABEL_LENGTH: int = 20
MULTICAST_CHUNK: int = 500


class NotificationError(Exception):
    """Raised when the messaging API rejects or fails a delivery."""


class NotificationGateway:
    """Interface used by the chat handlers and the settlement engine."""

    def reply(self, reply_token: str, replies: list[ChatReply]) -> None:
        raise NotImplementedError

    def push(self, to: str, text: str) -> None:
        raise NotImplementedError

    def multicast(self, to: list[str], text: str) -> None:
        raise NotImplementedError

    def get_display_name(self, line_user_id: str) -> str | None:
        return None


class LoggingGateway(NotificationGateway):
    """Gateway used when no channel token is configured; only writes to the log."""

    def reply(self, reply_token: str, replies: list[ChatReply]) -> None:
        for item in replies:
            logger.info("[NOTIFY] reply %s: %s", reply_token, item.text)

    def push(self, to: str, text: str) -> None:
        logger.info("[NOTIFY] push %s: %s", to, text)

    def multicast(self, to: list[str], text: str) -> None:
        logger.info("[NOTIFY] multicast %s: %s", ",".join(to), text)


def _truncate(label: str) -> str:
    return label if len(label) <= MAX_LABEL_LENGTH else label[: MAX_LABEL_LENGTH - 1] + "…"


def to_line_message(reply: ChatReply) -> dict[str, Any]:
    """Render a reply as a LINE text message with optional quick-reply postbacks."""
    message: dict[str, Any] = {"type": "text", "text": reply.text}
    if reply.actions:
        message["quickReply"] = {
            "items": [
                {
                    "type": "action",
                    "action": {
                        "type": "postback",
                        "label": _truncate(action.label),
                        "data": action.data,
                        "displayText": action.label,
                    },
                }
                for action in reply.actions[:MAX_QUICK_REPLY_ITEMS]
            ]
        }
    return message


class LineMessagingGateway(NotificationGateway):
    """LINE Messaging API client over plain HTTPS."""

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = "https://api.line.me",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"}

    def _post(self, path: str, payload: dict[str, Any]) -> None:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.post(url, headers=self.headers, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise NotificationError(f"{path} request failed: {exc}") from exc
        if resp.status_code >= 400:
            raise NotificationError(f"{path} returned {resp.status_code}: {resp.text[:200]}")

    def reply(self, reply_token: str, replies: list[ChatReply]) -> None:
        messages = [to_line_message(item) for item in replies[:MAX_REPLY_MESSAGES]]
        self._post("/v2/bot/message/reply", {"replyToken": reply_token, "messages": messages})

    def push(self, to: str, text: str) -> None:
        self._post("/v2/bot/message/push", {"to": to, "messages": [{"type": "text", "text": text}]})

    def multicast(self, to: list[str], text: str) -> None:
        for start in range(0, len(to), MULTICAST_CHUNK):
            chunk = to[start : start + MULTICAST_CHUNK]
            self._post("/v2/bot/message/multicast", {"to": chunk, "messages": [{"type": "text", "text": text}]})

    def get_display_name(self, line_user_id: str) -> str | None:
        url = f"{self.base_url}/v2/bot/profile/{line_user_id}"
        try:
            resp = self.session.get(url, headers=self.headers, timeout=self.timeout)
        except requests.RequestException:
            logger.warning("[NOTIFY] Profile lookup failed for %s", line_user_id, exc_info=True)
            return None
        if resp.status_code != 200:
            logger.warning("[NOTIFY] Profile lookup for %s returned %s", line_user_id, resp.status_code)
            return None
        return resp.json().get("displayName")


def deliver_push(gateway: NotificationGateway, to: str, text: str) -> bool:
    """Push one message; failures are logged and reported as False."""
    try:
        gateway.push(to, text)
    except Exception:
        logger.exception("[NOTIFY] Push to %s failed; skipping.", to)
        return False
    return True


def deliver_multicast(gateway: NotificationGateway, to: list[str], text: str) -> bool:
    if not to:
        logger.info("[NOTIFY] No recipients for multicast; skipping.")
        return False
    try:
        gateway.multicast(to, text)
    except Exception:
        logger.exception("[NOTIFY] Multicast to %s recipients failed; skipping.", len(to))
        return False
    return True


def build_gateway() -> NotificationGateway:
    if settings.line_channel_access_token:
        return LineMessagingGateway(
            settings.line_channel_access_token,
            base_url=settings.line_api_base_url,
            timeout=settings.notification_timeout_seconds,
        )
    return LoggingGateway()


def get_notification_gateway() -> NotificationGateway:
    """FastAPI dependency; overridden in tests."""
    return build_gateway()
