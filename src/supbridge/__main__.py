"""Entry point for `python -m supbridge` / `supbridge`.

Subcommands:
    supbridge run                 Poll for DMs/mentions, print events as JSON lines
    supbridge send CHAT_ID TEXT   Send one message
    supbridge search [QUERY]      Search users/chats (prints the raw response)
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import signal
import sys

from supbridge.types import SyncEvent


async def _print_event(event: SyncEvent) -> None:
    print(json.dumps(event.to_dict()), flush=True)


async def _run() -> int:
    from supbridge.event_bus import EventBus
    from supbridge.logger import logger
    from supbridge.plugin import collect_hook_results, get_plugin_manager
    from supbridge.plugin.builtin_sup_chat import PluginContext
    from supbridge.types import Channel

    bus = EventBus()
    bus.subscribe(SyncEvent, _print_event)

    pm = get_plugin_manager()
    channels = collect_hook_results(
        "supbridge_create_channel",
        lambda c: isinstance(c, Channel),
        "channel",
        pm=pm,
        context=PluginContext(on_event=bus.emit),
    )
    if not channels:
        logger.error("No channel enabled, check the [sup_chat] section of config.toml")
        return 1

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    connected = []
    try:
        for channel in channels:
            await channel.connect()
            connected.append(channel)
        await stop.wait()
    finally:
        for channel in connected:
            await channel.disconnect()
        await bus.drain()
    return 0


async def _send(chat_id: str, text: str) -> int:
    from supbridge.outbound import send_text

    result = await send_text(chat_id, text)
    print(json.dumps(result.to_dict()))
    return 0 if result.ok else 1


async def _search(query: str | None) -> int:
    from supbridge.client import SupClient
    from supbridge.config import get_settings
    from supbridge.credentials import load_auth_session
    from supbridge.errors import ConfigurationMissing
    from supbridge.types import EndpointConfig

    cfg = get_settings().sup_chat
    if cfg is None:
        raise ConfigurationMissing()
    session = load_auth_session(cfg.auth_session_path)
    async with SupClient(EndpointConfig.from_config(cfg), session) as client:
        data = await client.search_user_data(query)
    print(json.dumps(data, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="supbridge",
        description="Bridge Sup chat DMs and mentions to an agent host",
    )
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("run", help="Poll for new DMs and mentions (default)")

    send = sub.add_parser("send", help="Send a message to a chat")
    send.add_argument("chat_id")
    send.add_argument("text")

    search = sub.add_parser("search", help="Search users and chats")
    search.add_argument("query", nargs="?", default=None)
    return parser


def main(argv: list[str] | None = None) -> None:
    from supbridge.config import get_settings
    from supbridge.logger import apply_config_level

    args = build_parser().parse_args(argv)
    apply_config_level(get_settings().logging.level)

    if args.command == "send":
        code = asyncio.run(_send(args.chat_id, args.text))
    elif args.command == "search":
        code = asyncio.run(_search(args.query))
    else:
        code = asyncio.run(_run())
    sys.exit(code)


if __name__ == "__main__":
    main()
