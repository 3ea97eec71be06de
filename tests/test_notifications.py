"""Notification gateway tests."""

from lunchbot.schemas.chat import ChatReply, PostbackAction
from lunchbot.services.notifications import (
    LineMessagingGateway,
    LoggingGateway,
    build_gateway,
    deliver_multicast,
    deliver_push,
    to_line_message,
)
from lunchbot.core.config import settings


class _FakeResponse:
    def __init__(self, status_code: int = 200, payload: dict | None = None) -> None:
        self.status_code = status_code
        self._payload = payload or {}
        self.text = ""

    def json(self) -> dict:
        return self._payload


class _FakeSession:
    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.posts: list[tuple[str, dict]] = []

    def post(self, url: str, headers: dict, json: dict, timeout: float) -> _FakeResponse:
        self.posts.append((url, json))
        return _FakeResponse(self.status_code)

    def get(self, url: str, headers: dict, timeout: float) -> _FakeResponse:
        return _FakeResponse(200, {"displayName": "Profile Name"})


def test_quick_reply_labels_are_truncated() -> None:
    reply = ChatReply(
        text="Pick one",
        actions=[PostbackAction(label="A very long dish name with extras", data="action=order&menu_item_id=1")],
    )

    message = to_line_message(reply)

    action = message["quickReply"]["items"][0]["action"]
    assert len(action["label"]) == 20
    assert action["data"] == "action=order&menu_item_id=1"
    assert action["displayText"] == "A very long dish name with extras"


def test_line_gateway_posts_to_messaging_api() -> None:
    session = _FakeSession()
    gateway = LineMessagingGateway("token", base_url="https://line.test/", session=session)

    gateway.push("U1", "hello")
    gateway.multicast(["U1", "U2"], "report")
    gateway.reply("reply-token", [ChatReply(text="hi")])

    assert [url for url, _ in session.posts] == [
        "https://line.test/v2/bot/message/push",
        "https://line.test/v2/bot/message/multicast",
        "https://line.test/v2/bot/message/reply",
    ]
    assert session.posts[1][1]["to"] == ["U1", "U2"]
    assert gateway.get_display_name("U1") == "Profile Name"


def test_delivery_helpers_swallow_failures() -> None:
    gateway = LineMessagingGateway("token", session=_FakeSession(status_code=500))

    assert deliver_push(gateway, "U1", "hello") is False
    assert deliver_multicast(gateway, ["U1"], "report") is False
    assert deliver_multicast(LoggingGateway(), [], "report") is False
    assert deliver_push(LoggingGateway(), "U1", "hello") is True


def test_gateway_selection_follows_token(monkeypatch) -> None:
    monkeypatch.setattr(settings, "line_channel_access_token", "")
    assert isinstance(build_gateway(), LoggingGateway)

    monkeypatch.setattr(settings, "line_channel_access_token", "token")
    assert isinstance(build_gateway(), LineMessagingGateway)
