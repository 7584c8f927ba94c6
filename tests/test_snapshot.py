"""Tests for chat-panel snapshot decoding."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from conftest import FakeSup, chat, chat_panel, msg

from supbridge.client import SupClient
from supbridge.errors import MalformedSnapshot, RequestFailed
from supbridge.snapshot import (
    check_chat_panel,
    fetch_snapshot,
    parse_chat_panel,
)
from supbridge.types import ChatSnapshot, EndpointConfig, Session


class TestParseChatPanel:
    def test_well_formed_response(self) -> None:
        raw = chat_panel(
            chat("C1", "direct", msg("m1", "u1", "hi")),
            chat("G1", "group", msg("m2", "u2", "yo", mentions=["bot"]), msg("m3")),
        )
        snap = parse_chat_panel(raw)
        assert [c.id for c in snap.chats] == ["C1", "G1"]
        assert snap.chats[0].is_direct
        assert not snap.chats[1].is_direct
        m1 = snap.chats[0].messages[0]
        assert (m1.id, m1.chat_id, m1.sender_id, m1.content) == ("m1", "C1", "u1", "hi")
        assert m1.created_at == "2026-01-01T00:00:00.000Z"
        assert m1.mentions is None
        assert snap.chats[1].messages[0].mentions == ("bot",)
        assert len(snap) == 3

    def test_preserves_snapshot_order(self) -> None:
        raw = chat_panel(
            chat("B", "direct", msg("b2"), msg("b1")),
            chat("A", "direct", msg("a1")),
        )
        assert [m.id for _, m in parse_chat_panel(raw).messages()] == ["b2", "b1", "a1"]

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            [],
            "oops",
            {},
            {"result": None},
            {"result": {"data": None}},
            {"result": {"data": {}}},
            {"result": {"data": {"chats": None}}},
            {"result": {"data": {"chats": {"C1": {}}}}},
        ],
    )
    def test_missing_levels_mean_empty(self, raw) -> None:
        assert parse_chat_panel(raw) == ChatSnapshot.empty()

    def test_chat_without_messages_is_kept_empty(self) -> None:
        snap = parse_chat_panel(chat_panel({"id": "C1", "type": "direct"}))
        assert snap.chats[0].messages == ()

    def test_chat_without_id_is_dropped(self) -> None:
        snap = parse_chat_panel(chat_panel({"type": "direct", "messages": [msg("m1")]}, "junk"))
        assert snap.chats == ()

    def test_message_without_id_is_dropped(self) -> None:
        raw = chat_panel(chat("C1", "direct", {"senderId": "u1", "content": "x"}, msg("m2"), 7))
        assert [m.id for _, m in parse_chat_panel(raw).messages()] == ["m2"]

    def test_numeric_ids_are_stringified(self) -> None:
        raw = chat_panel({"id": 10, "type": "direct", "messages": [{"id": 42, "senderId": 7}]})
        _, message = next(parse_chat_panel(raw).messages())
        assert message.id == "42"
        assert message.chat_id == "10"
        assert message.sender_id == "7"

    def test_missing_fields_get_empty_defaults(self) -> None:
        raw = chat_panel({"id": "C1", "messages": [{"id": "m1", "content": None}]})
        snap = parse_chat_panel(raw)
        assert snap.chats[0].type == ""
        message = snap.chats[0].messages[0]
        assert message.content == ""
        assert message.sender_id == ""
        assert message.created_at is None

    def test_non_list_mentions_ignored(self) -> None:
        raw = chat_panel(chat("G1", "group", {"id": "m1", "mentions": "bot"}))
        _, message = next(parse_chat_panel(raw).messages())
        assert message.mentions is None

    def test_message_chat_id_overrides_enclosing_chat(self) -> None:
        raw = chat_panel(chat("C1", "direct", {"id": "m1", "chatId": "C9"}))
        _, message = next(parse_chat_panel(raw).messages())
        assert message.chat_id == "C9"


class TestCheckChatPanel:
    def test_valid_envelope_without_chats_is_fine(self) -> None:
        check_chat_panel({"result": {"data": {}}})

    @pytest.mark.parametrize(
        "raw",
        [None, [], {}, {"result": []}, {"result": {}}, {"result": {"data": {"chats": "x"}}}],
    )
    def test_broken_envelope_raises(self, raw) -> None:
        with pytest.raises(MalformedSnapshot):
            check_chat_panel(raw)

    def test_good_envelope_passes(self) -> None:
        check_chat_panel(chat_panel(chat("C1", "direct", msg("m1"))))


class TestFetchSnapshot:
    async def test_fetches_and_decodes(self, fake_sup: FakeSup) -> None:
        fake_sup.snapshot = chat_panel(chat("C1", "direct", msg("m1")))
        endpoint = EndpointConfig(base_url=fake_sup.base_url)
        async with SupClient(endpoint, Session(token="t")) as client:
            snap = await fetch_snapshot(client)
        assert [m.id for _, m in snap.messages()] == ["m1"]
        assert fake_sup.panel_calls == 1

    async def test_broken_envelope_is_empty_with_warning(self, fake_sup: FakeSup) -> None:
        fake_sup.snapshot = {"result": {"data": {"chats": "nope"}}}
        endpoint = EndpointConfig(base_url=fake_sup.base_url)
        with patch("supbridge.snapshot.logger") as mock_logger:
            async with SupClient(endpoint, Session(token="t")) as client:
                snap = await fetch_snapshot(client)
        assert snap == ChatSnapshot.empty()
        mock_logger.warning.assert_called_once()
        assert "not a list" in mock_logger.warning.call_args.kwargs["reason"]

    async def test_request_failure_propagates(self, fake_sup: FakeSup) -> None:
        fake_sup.panel_status = 401
        endpoint = EndpointConfig(base_url=fake_sup.base_url)
        async with SupClient(endpoint, Session(token="t")) as client:
            with pytest.raises(RequestFailed):
                await fetch_snapshot(client)
