"""Pluggy hook specifications for supbridge plugins.

All hooks use the "supbridge" namespace and are validated by pluggy at
registration time.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("supbridge")


class SupbridgeSpec:
    """Hook specifications for supbridge plugins."""

    @hookspec
    def supbridge_channel_info(self) -> dict[str, Any]:
        """Describe a channel this plugin provides.

        Returns:
            Dict with keys:
                - id: Channel identifier (e.g. "sup-chat")
                - meta: Display metadata (label, blurb, aliases, ...)
                - capabilities: Supported chat types and features
        """

    @hookspec
    def supbridge_create_channel(self, context: Any) -> Any | None:
        """Create a communication channel instance.

        Args:
            context: PluginContext carrying settings and the event sink

        Returns:
            Channel instance implementing the Channel protocol, or None if
            this plugin has nothing to run (not configured or disabled)
        """
