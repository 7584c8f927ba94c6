"""Built-in Sup chat channel plugin.

Activation: add a ``[sup_chat]`` section to config.toml with ``enabled =
true``, ``base_url`` and ``auth_session_path``. The plugin returns ``None``
when the section is absent or disabled, so it never starts a poller nobody
asked for.

Only a single account (``"default"``) is supported for now.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from supbridge.channel import CHANNEL_CAPABILITIES, CHANNEL_META, SupChatChannel
from supbridge.config import Settings, get_settings
from supbridge.event_bus import EventSink
from supbridge.logger import logger
from supbridge.plugin import hookimpl
from supbridge.types import CHANNEL_ID

DEFAULT_ACCOUNT_ID = "default"


@dataclass
class PluginContext:
    """Host services handed to channel factories."""

    on_event: EventSink
    settings: Settings | None = None


def list_account_ids(settings: Settings) -> list[str]:
    cfg = settings.sup_chat
    return [DEFAULT_ACCOUNT_ID] if cfg is not None and cfg.enabled else []


def resolve_account(settings: Settings, account_id: str | None = None) -> dict[str, Any]:
    """Flatten the account's config into a dict keyed like the host expects."""
    cfg = settings.sup_chat
    data = cfg.model_dump() if cfg is not None else {}
    return {"account_id": account_id or DEFAULT_ACCOUNT_ID, **data}


class SupChatChannelPlugin:
    """Built-in plugin that activates when ``[sup_chat]`` is enabled."""

    @hookimpl
    def supbridge_channel_info(self) -> dict[str, Any]:
        return {
            "id": CHANNEL_ID,
            "meta": dict(CHANNEL_META),
            "capabilities": dict(CHANNEL_CAPABILITIES),
        }

    @hookimpl
    def supbridge_create_channel(self, context: Any) -> SupChatChannel | None:
        # Guard against None/incomplete context (e.g. in tests)
        if context is None:
            return None
        on_event = getattr(context, "on_event", None)
        if on_event is None:
            return None

        s = getattr(context, "settings", None) or get_settings()
        if not list_account_ids(s):
            logger.debug("Sup chat channel skipped, not configured or disabled")
            return None

        return SupChatChannel(s, on_event, connection_name=DEFAULT_ACCOUNT_ID)
