"""Chat-panel snapshot fetching and tolerant decoding.

The ``loader.chatPanelData`` response has no published schema. All the
defensive navigation lives here: whatever shape comes back, the sync loop
only ever sees a well-formed :class:`ChatSnapshot`, possibly empty.

Expected shape::

    {"result": {"data": {"chats": [
        {"id": ..., "type": "direct" | "group",
         "messages": [{"id": ..., "senderId": ..., "content": ...,
                       "createdAt": ..., "mentions": [...]}]}
    ]}}}
"""

from __future__ import annotations

from typing import Any

from supbridge.client import SupClient
from supbridge.errors import MalformedSnapshot
from supbridge.logger import logger
from supbridge.types import Chat, ChatSnapshot, Message


async def fetch_snapshot(client: SupClient) -> ChatSnapshot:
    """GET the chat panel once and decode it.

    Request failures propagate. A response without the tRPC envelope is logged
    and decoded as an empty snapshot.
    """
    raw = await client.fetch_chat_panel_data()
    try:
        check_chat_panel(raw)
    except MalformedSnapshot as exc:
        logger.warning("Unexpected chat panel shape, treating as empty", reason=str(exc))
        return ChatSnapshot.empty()
    return parse_chat_panel(raw)


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_id(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value)
    return text or None


def _chats_of(raw: Any) -> list[Any]:
    return _as_list(_as_dict(_as_dict(_as_dict(raw).get("result")).get("data")).get("chats"))


def _parse_message(raw: Any, chat_id: str) -> Message | None:
    if not isinstance(raw, dict):
        return None
    message_id = _as_id(raw.get("id"))
    if message_id is None:
        return None

    mentions_raw = raw.get("mentions")
    mentions = (
        tuple(str(m) for m in mentions_raw if m is not None)
        if isinstance(mentions_raw, list)
        else None
    )
    content = raw.get("content")
    created_at = raw.get("createdAt")
    return Message(
        id=message_id,
        chat_id=_as_id(raw.get("chatId")) or chat_id,
        sender_id=_as_id(raw.get("senderId")) or "",
        content=content if isinstance(content, str) else "",
        created_at=str(created_at) if created_at is not None else None,
        mentions=mentions,
    )


def _parse_chat(raw: Any) -> Chat | None:
    if not isinstance(raw, dict):
        return None
    chat_id = _as_id(raw.get("id"))
    if chat_id is None:
        return None
    chat_type = raw.get("type")
    messages = tuple(
        msg
        for msg in (_parse_message(m, chat_id) for m in _as_list(raw.get("messages")))
        if msg is not None
    )
    return Chat(
        id=chat_id,
        type=chat_type if isinstance(chat_type, str) else "",
        messages=messages,
    )


def parse_chat_panel(raw: Any) -> ChatSnapshot:
    """Map an untyped chat-panel response onto :class:`ChatSnapshot`.

    Missing or wrongly-typed levels are treated as empty; chats and messages
    without an id are dropped. Never raises.
    """
    chats = tuple(chat for chat in (_parse_chat(c) for c in _chats_of(raw)) if chat is not None)
    return ChatSnapshot(chats=chats)


def check_chat_panel(raw: Any) -> None:
    """Raise :class:`MalformedSnapshot` if the response lacks the tRPC envelope."""
    if not isinstance(raw, dict):
        raise MalformedSnapshot(f"expected a JSON object, got {type(raw).__name__}")
    result = raw.get("result")
    if not isinstance(result, dict):
        raise MalformedSnapshot("missing 'result' object")
    data = result.get("data")
    if not isinstance(data, dict):
        raise MalformedSnapshot("missing 'result.data' object")
    if "chats" in data and not isinstance(data["chats"], list):
        raise MalformedSnapshot("'result.data.chats' is not a list")
