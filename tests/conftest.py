"""Shared test fixtures for supbridge."""

from __future__ import annotations

import asyncio
import copy
from pathlib import Path
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from supbridge.types import SyncEvent

# ---------------------------------------------------------------------------
# Shared helpers (plain functions, importable by test files)
# ---------------------------------------------------------------------------


def make_sup_config(**overrides):
    """Create a SupChatConfig with test defaults."""
    from supbridge.config import SupChatConfig

    defaults: dict[str, Any] = {
        "base_url": "http://sup.invalid",
        "auth_session_path": "/nonexistent/auth_session",
        "enabled": True,
        "poll_interval": 100,
    }
    defaults.update(overrides)
    return SupChatConfig(**defaults)


def make_settings(**overrides):
    """Create a Settings object without reading config.toml, .env, or env vars.

    Usage::

        s = make_settings(sup_chat=make_sup_config(base_url=url))
        s = make_settings(sup_chat=None)
    """
    from supbridge.config import LoggingConfig, Settings

    defaults: dict[str, Any] = {
        "logging": LoggingConfig(),
        "sup_chat": make_sup_config(),
        "bot_user_id": "bot",
    }
    defaults.update(overrides)
    return Settings.model_construct(**defaults)


def chat_panel(*chats: dict[str, Any]) -> dict[str, Any]:
    """Wrap chat dicts in the tRPC envelope returned by loader.chatPanelData."""
    return {"result": {"data": {"chats": list(chats)}}}


def chat(chat_id: str, chat_type: str, *messages: dict[str, Any]) -> dict[str, Any]:
    return {"id": chat_id, "type": chat_type, "messages": list(messages)}


def msg(
    message_id: str,
    sender_id: str = "u1",
    content: str = "hi",
    mentions: list[str] | None = None,
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": message_id,
        "senderId": sender_id,
        "content": content,
        "createdAt": "2026-01-01T00:00:00.000Z",
    }
    if mentions is not None:
        data["mentions"] = mentions
    return data


class EventRecorder:
    """Synchronous event sink that remembers everything it receives."""

    def __init__(self) -> None:
        self.events: list[SyncEvent] = []

    def __call__(self, event: SyncEvent) -> None:
        self.events.append(event)

    @property
    def message_ids(self) -> list[str]:
        return [e.message_id for e in self.events]


class FakeSup:
    """In-process stand-in for the Sup tRPC API."""

    def __init__(self) -> None:
        self.snapshot: Any = chat_panel()
        self.panel_status: int = 200
        self.panel_delay: float = 0.0
        self.panel_calls: int = 0
        self.panel_headers: list[dict[str, str]] = []
        self.created: list[dict[str, Any]] = []
        self.create_headers: list[dict[str, str]] = []
        self.create_status: int = 200
        self.search_inputs: list[str | None] = []
        self.server: TestServer | None = None

    @property
    def base_url(self) -> str:
        assert self.server is not None
        return f"http://{self.server.host}:{self.server.port}"

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/trpc/loader.chatPanelData", self._handle_panel)
        app.router.add_post("/api/trpc/chatMessage.create", self._handle_create)
        app.router.add_get("/api/trpc/userData.searchAll", self._handle_search)
        return app

    async def _handle_panel(self, request: web.Request) -> web.Response:
        self.panel_calls += 1
        self.panel_headers.append(dict(request.headers))
        if self.panel_delay:
            await asyncio.sleep(self.panel_delay)
        if self.panel_status != 200:
            return web.Response(status=self.panel_status, text="nope")
        return web.json_response(copy.deepcopy(self.snapshot))

    async def _handle_create(self, request: web.Request) -> web.Response:
        self.create_headers.append(dict(request.headers))
        if self.create_status != 200:
            return web.Response(status=self.create_status, text="nope")
        body = await request.json()
        self.created.append(body)
        return web.json_response({"result": {"data": {"json": {"id": f"srv{len(self.created)}"}}}})

    async def _handle_search(self, request: web.Request) -> web.Response:
        self.search_inputs.append(request.query.get("input"))
        return web.json_response({"result": {"data": {"users": []}}})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def fake_sup():
    """Start a fake Sup API server for the duration of one test."""
    fake = FakeSup()
    server = TestServer(fake.app())
    await server.start_server()
    fake.server = server
    yield fake
    await server.close()


@pytest.fixture
def session_file(tmp_path: Path) -> Path:
    path = tmp_path / "auth_session"
    path.write_text("tok-123\n")
    return path


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()
