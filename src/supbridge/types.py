"""Data models for supbridge."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from supbridge.config import SupChatConfig

CHANNEL_ID = "sup-chat"


@dataclass(frozen=True)
class Session:
    """Opaque auth_session cookie value. Never logged."""

    token: str

    def __repr__(self) -> str:
        return "Session(token=***)"


@dataclass(frozen=True)
class EndpointConfig:
    base_url: str
    client_version: str | None = None
    session_id: str | None = None
    timeout: float | None = None  # seconds; None → transport default

    @classmethod
    def from_config(cls, cfg: SupChatConfig) -> EndpointConfig:
        return cls(
            base_url=cfg.base_url,
            client_version=cfg.client_version,
            session_id=cfg.session_id,
            timeout=cfg.request_timeout,
        )


# --- Snapshot model ---


@dataclass(frozen=True)
class Message:
    id: str
    chat_id: str
    sender_id: str
    content: str
    created_at: str | None = None
    mentions: tuple[str, ...] | None = None


@dataclass(frozen=True)
class Chat:
    id: str
    type: str  # "direct" | "group"; unknown values kept verbatim
    messages: tuple[Message, ...] = ()

    @property
    def is_direct(self) -> bool:
        return self.type == "direct"


@dataclass(frozen=True)
class ChatSnapshot:
    chats: tuple[Chat, ...] = ()

    @classmethod
    def empty(cls) -> ChatSnapshot:
        return cls()

    def messages(self) -> Iterator[tuple[Chat, Message]]:
        """Yield (chat, message) pairs in snapshot order."""
        for chat in self.chats:
            for message in chat.messages:
                yield chat, message

    def __len__(self) -> int:
        return sum(len(chat.messages) for chat in self.chats)


# --- Outbound ---


@dataclass(frozen=True)
class OutboundMessageRequest:
    chat_id: str
    content: str
    optimistic_id: str
    mentions: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the tRPC body expected by ``chatMessage.create``."""
        return {
            "json": {
                "optimisticId": self.optimistic_id,
                "chatId": self.chat_id,
                "content": self.content,
                "contentData": build_content_doc(self.content),
                "mentions": list(self.mentions),
                "attachments": [],
                "isGenerated": True,
                "isPostComment": False,
                "visibility": "public",
            },
            "meta": {"values": {}},
        }


def build_content_doc(text: str) -> dict[str, Any]:
    """Rich-text document holding ``text`` as a single unformatted paragraph."""
    return {
        "type": "doc",
        "content": [
            {
                "type": "paragraph",
                "content": [{"type": "text", "text": text, "marks": []}],
            }
        ],
    }


@dataclass(frozen=True)
class SendResult:
    ok: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True}
        return {"ok": False, "error": self.error or ""}


# --- Events ---


@dataclass(frozen=True)
class SyncEvent:
    """One new relevant message, handed to the event sink exactly once."""

    chat_id: str
    message_id: str
    sender_id: str
    text: str
    is_dm: bool
    mentions: tuple[str, ...] | None = None
    channel: str = CHANNEL_ID

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel,
            "chatId": self.chat_id,
            "messageId": self.message_id,
            "senderId": self.sender_id,
            "text": self.text,
            "isDM": self.is_dm,
            "mentions": list(self.mentions) if self.mentions is not None else None,
        }


class LoopState(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


# --- Channel abstraction ---


@runtime_checkable
class Channel(Protocol):
    name: str

    async def connect(self) -> None: ...

    async def send_message(self, jid: str, text: str) -> SendResult: ...

    def is_connected(self) -> bool:
        """Return True iff the channel is currently polling for inbound messages."""
        ...

    def owns_jid(self, jid: str) -> bool: ...

    async def disconnect(self) -> None: ...
