"""Authenticated HTTP client for the Sup tRPC API.

Every request carries the ``auth_session`` cookie plus the optional client
headers the web app sends. Failures are never retried here: a non-2xx
response raises :class:`RequestFailed`, a network-level failure raises
:class:`TransportError`. Retrying is the caller's business (the sync loop
simply tries again on its next tick).
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

import aiohttp

from supbridge.errors import RequestFailed, TransportError
from supbridge.types import EndpointConfig, Session

CHAT_MESSAGE_CREATE = "/api/trpc/chatMessage.create"
CHAT_PANEL_DATA = "/api/trpc/loader.chatPanelData"
USER_DATA_SEARCH = "/api/trpc/userData.searchAll"

CLIENT_VERSION_HEADER = "x-sup-client-version"
SESSION_ID_HEADER = "x-sup-session-id"


class SupClient:
    """Thin async wrapper around ``aiohttp`` for the three endpoints we use.

    The client owns its ``aiohttp.ClientSession`` unless one is passed in,
    in which case closing the client leaves the borrowed session open.
    """

    def __init__(
        self,
        endpoint: EndpointConfig,
        session: Session,
        *,
        http: aiohttp.ClientSession | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._session = session
        self._http = http
        self._owns_http = http is None

    async def __aenter__(self) -> SupClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def endpoint(self) -> EndpointConfig:
        return self._endpoint

    def _get_http(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            timeout = (
                aiohttp.ClientTimeout(total=self._endpoint.timeout)
                if self._endpoint.timeout is not None
                else None
            )
            kwargs: dict[str, Any] = {"timeout": timeout} if timeout is not None else {}
            self._http = aiohttp.ClientSession(**kwargs)
            self._owns_http = True
        return self._http

    async def close(self) -> None:
        if self._http is not None and self._owns_http and not self._http.closed:
            await self._http.close()
        if self._owns_http:
            self._http = None

    # ------------------------------------------------------------------
    # Core request
    # ------------------------------------------------------------------

    def build_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Cookie": f"auth_session={self._session.token}",
            "Content-Type": "application/json",
        }
        if self._endpoint.client_version:
            headers[CLIENT_VERSION_HEADER] = self._endpoint.client_version
        if self._endpoint.session_id:
            headers[SESSION_ID_HEADER] = self._endpoint.session_id
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Issue one request against ``base_url + path`` and decode the JSON reply."""
        url = f"{self._endpoint.base_url}{path}"
        data = json.dumps(body) if body is not None else None
        http = self._get_http()
        try:
            async with http.request(
                method, url, data=data, headers=self.build_headers(headers)
            ) as resp:
                if not 200 <= resp.status < 300:
                    raise RequestFailed(resp.status, resp.reason)
                return await resp.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError) as exc:
            detail = str(exc) or type(exc).__name__
            raise TransportError(f"{method} {path} failed: {detail}") from exc

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def fetch_chat_panel_data(self) -> Any:
        return await self.request(CHAT_PANEL_DATA)

    async def create_chat_message(self, payload: dict[str, Any]) -> Any:
        return await self.request(CHAT_MESSAGE_CREATE, method="POST", body=payload)

    async def search_user_data(self, query: str | None = None) -> Any:
        """Search users and chats. Not used by the sync loop."""
        path = USER_DATA_SEARCH
        if query:
            path += f"?input={quote(json.dumps({'query': query}), safe='')}"
        return await self.request(path)
