"""Plugin system for supbridge.

Built on pluggy (pytest's plugin framework). The built-in Sup chat channel
is registered like any third-party plugin would be.

Usage:
    from supbridge.plugin import get_plugin_manager

    pm = get_plugin_manager()
    infos = pm.hook.supbridge_channel_info()
    channels = pm.hook.supbridge_create_channel(context=ctx)
"""

from __future__ import annotations

import importlib
from collections.abc import Callable
from typing import Any

import pluggy

from supbridge.logger import logger
from supbridge.plugin.hookspecs import SupbridgeSpec

__all__ = [
    "collect_hook_results",
    "get_plugin_manager",
    "hookimpl",
]

hookimpl = pluggy.HookimplMarker("supbridge")

# Static registry of built-in plugins: (module_path, class_name, name)
_BUILTIN_PLUGIN_SPECS: list[tuple[str, str, str]] = [
    ("supbridge.plugin.builtin_sup_chat", "SupChatChannelPlugin", "sup-chat"),
]


def get_plugin_manager() -> pluggy.PluginManager:
    """Create and configure the plugin manager.

    Registers the built-in plugins, then third-party plugins advertised under
    the "supbridge" entry point group.
    """
    pm = pluggy.PluginManager("supbridge")
    pm.add_hookspecs(SupbridgeSpec)

    for module_path, class_name, name in _BUILTIN_PLUGIN_SPECS:
        try:
            mod = importlib.import_module(module_path)
            cls = getattr(mod, class_name)
            pm.register(cls(), name=f"builtin-{name}")
            logger.debug("Registered built-in plugin", name=name)
        except Exception:
            logger.exception("Failed to load built-in plugin", plugin=name)

    discovered = pm.load_setuptools_entrypoints("supbridge")
    if discovered:
        logger.info("Discovered third-party plugins", count=discovered)

    # Entry points occasionally resolve to the class instead of an instance.
    for plugin in list(pm.get_plugins()):
        if isinstance(plugin, type):
            plugin_name = pm.get_name(plugin) or plugin.__name__
            pm.unregister(plugin=plugin)
            logger.warning("Unregistered invalid class-based plugin object", plugin=plugin_name)

    logger.debug("Plugin manager ready", plugins=[pm.get_name(p) for p in pm.get_plugins()])
    return pm


def collect_hook_results(
    hook_attr: str,
    validator: Callable[[Any], bool],
    label: str,
    *,
    pm: pluggy.PluginManager | None = None,
    **hook_kwargs: Any,
) -> list[Any]:
    """Call a pluggy hook and return validated results.

    ``None`` results are dropped; results failing ``validator`` are logged and
    skipped. A plugin raising inside the hook yields an empty list rather than
    crashing the caller.
    """
    if pm is None:
        pm = get_plugin_manager()

    hook_caller = getattr(pm.hook, hook_attr)
    try:
        provided = hook_caller(**hook_kwargs)
    except Exception:
        logger.exception("Failed to resolve plugins", label=label)
        return []

    results: list[Any] = []
    for item in provided:
        if item is None:
            continue
        if not validator(item):
            logger.warning(
                "Ignoring invalid plugin result", label=label, plugin_type=type(item).__name__
            )
            continue
        results.append(item)
    return results
