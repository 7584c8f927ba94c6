"""Outbound path: turn text into a new Sup chat message.

``send_message`` is the raw operation and lets client errors propagate.
``send_text`` is the boundary exposed to the host: it never raises and
reports every failure as a :class:`SendResult`.

Self-sent messages are not recorded anywhere locally. When the next poll
sees the echo it is a new id like any other (see
``sup_chat.ignore_own_messages`` to drop those).
"""

from __future__ import annotations

import random
import string
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from supbridge.client import SupClient
from supbridge.config import Settings, get_settings
from supbridge.credentials import load_auth_session
from supbridge.errors import ConfigurationMissing
from supbridge.logger import logger
from supbridge.types import (
    EndpointConfig,
    OutboundMessageRequest,
    SendResult,
    Session,
    build_content_doc,
)

__all__ = [
    "build_content_doc",
    "build_request",
    "generate_optimistic_id",
    "send_message",
    "send_text",
]

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LEN = 9


def generate_optimistic_id() -> str:
    """Client-side message id: ``msg_<epoch ms>_<9 base-36 chars>``.

    The server treats it as an idempotency hint only, so collisions just need
    to be unlikely within one session.
    """
    ms = int(time.time() * 1000)
    suffix = "".join(random.choices(_ID_ALPHABET, k=_ID_SUFFIX_LEN))
    return f"msg_{ms}_{suffix}"


def build_request(
    chat_id: str, text: str, mentions: Sequence[str] = ()
) -> OutboundMessageRequest:
    return OutboundMessageRequest(
        chat_id=chat_id,
        content=text,
        optimistic_id=generate_optimistic_id(),
        mentions=tuple(mentions),
    )


async def send_message(
    client: SupClient, chat_id: str, text: str, mentions: Sequence[str] = ()
) -> Any:
    """POST a new message to ``chat_id``. Returns the decoded response."""
    request = build_request(chat_id, text, mentions)
    return await client.create_chat_message(request.to_payload())


async def send_text(
    chat_id: str,
    text: str,
    *,
    settings: Settings | None = None,
    credential_loader: Callable[[str | Path], Session] = load_auth_session,
) -> SendResult:
    """Send ``text`` to ``chat_id`` using the configured account.

    The auth session is re-read for every send so a refreshed cookie file is
    picked up without restarting the gateway.
    """
    try:
        s = settings if settings is not None else get_settings()
        cfg = s.sup_chat
        if cfg is None:
            raise ConfigurationMissing()

        session = credential_loader(cfg.auth_session_path)
        async with SupClient(EndpointConfig.from_config(cfg), session) as client:
            await send_message(client, chat_id, text)
    except Exception as exc:
        logger.error("Failed to send message", chat_id=chat_id, err=str(exc))
        return SendResult(ok=False, error=str(exc))

    logger.info("Sent message", chat_id=chat_id)
    return SendResult(ok=True)
