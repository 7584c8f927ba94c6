"""SupChatChannel: ``Channel`` protocol implementation backed by polling.

Each Sup conversation is identified by a JID of the form
``sup-chat:<chatId>`` so it can coexist with other channels in the host.
"""

from __future__ import annotations

from typing import Any

from supbridge.config import Settings, SupChatConfig
from supbridge.credentials import load_auth_session
from supbridge.event_bus import EventSink
from supbridge.logger import logger
from supbridge.outbound import send_text
from supbridge.seen import SeenSet
from supbridge.sync import CredentialLoader, SyncLoop
from supbridge.types import CHANNEL_ID, LoopState, SendResult

JID_PREFIX = f"{CHANNEL_ID}:"

CHANNEL_META: dict[str, Any] = {
    "id": CHANNEL_ID,
    "label": "Sup Chat",
    "selection_label": "Sup Chat (sup.net API)",
    "docs_path": "/channels/sup-chat",
    "blurb": "Connect to sup.net chat API for monitoring mentions/DMs and responding.",
    "aliases": ["sup"],
}

CHANNEL_CAPABILITIES: dict[str, Any] = {
    "chat_types": ["direct", "group"],
    "supports_media": False,
    "supports_threads": False,
    "supports_streaming": False,
    "delivery_mode": "direct",
}


def _jid(chat_id: str) -> str:
    """Convert a Sup chat ID to a JID."""
    return f"{JID_PREFIX}{chat_id}"


def _chat_id_from_jid(jid: str) -> str:
    """Extract the Sup chat ID from a JID."""
    return jid.removeprefix(JID_PREFIX)


class SupChatChannel:
    """Gateway for one Sup account: inbound polling plus outbound sends."""

    def __init__(
        self,
        settings: Settings,
        on_event: EventSink,
        *,
        connection_name: str = "default",
        credential_loader: CredentialLoader = load_auth_session,
        seen: SeenSet | None = None,
    ) -> None:
        self.name = CHANNEL_ID
        self._settings = settings
        self._connection_name = connection_name
        self._on_event = on_event
        self._credential_loader = credential_loader
        self._seen = seen
        self._loop: SyncLoop | None = None

    @property
    def config(self) -> SupChatConfig | None:
        return self._settings.sup_chat

    @property
    def loop(self) -> SyncLoop | None:
        return self._loop

    # ------------------------------------------------------------------
    # Channel protocol
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        cfg = self.config
        if cfg is None or not cfg.enabled:
            logger.info("Channel disabled, skipping start", connection=self._connection_name)
            return

        if self._loop is None:
            self._loop = SyncLoop(
                cfg,
                self._on_event,
                self_identity=self._settings.bot_user_id,
                connection_name=self._connection_name,
                credential_loader=self._credential_loader,
                seen=self._seen,
            )

        logger.info("Starting channel gateway", connection=self._connection_name)
        try:
            await self._loop.start()
        except Exception as exc:
            logger.error(
                "Failed to start gateway", connection=self._connection_name, err=str(exc)
            )
            raise
        logger.info(
            "Gateway started",
            connection=self._connection_name,
            poll_interval_ms=cfg.poll_interval,
        )

    async def disconnect(self) -> None:
        if self._loop is not None and self._loop.state is not LoopState.STOPPED:
            await self._loop.stop()
            logger.info("Gateway stopped", connection=self._connection_name)

    async def send_message(self, jid: str, text: str) -> SendResult:
        chat_id = _chat_id_from_jid(jid)
        return await send_text(
            chat_id, text, settings=self._settings, credential_loader=self._credential_loader
        )

    def is_connected(self) -> bool:
        return self._loop is not None and self._loop.is_running()

    def owns_jid(self, jid: str) -> bool:
        return jid.startswith(JID_PREFIX)
