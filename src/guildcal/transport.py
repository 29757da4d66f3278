"""HTTP transport for the guild API.

Managers only depend on the ``Transport`` protocol. ``RestClient`` is the
bundled implementation over ``httpx.AsyncClient``: it adds auth headers,
encodes the audit-log reason, and turns non-2xx answers into
``HTTPRequestError``. It does not retry or rate-limit.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from guildcal.constants import API_BASE_URL, AUDIT_LOG_REASON_HEADER
from guildcal.core.telemetry import http_span
from guildcal.errors import HTTPRequestError, RequestError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = "guildcal/0.1.0"
_ERROR_MESSAGE_MAX_CHARS = 200

# Placeholder names for id segments, keyed by the segment before them.
_ROUTE_PARAMS = {"guilds": "guild_id", "scheduled-events": "event_id", "users": "user_id"}


class Transport(Protocol):
    """Issue one API request and return the decoded JSON body (``None`` for 204)."""

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_body: Mapping[str, Any] | None = None,
        reason: str | None = None,
    ) -> Any: ...


def _safe_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message.strip():
            code = payload.get("code")
            text = " ".join(message.split())
            if code is not None:
                text = f"{text} (code {code})"
            return text[:_ERROR_MESSAGE_MAX_CHARS]

    raw_text = response.text.strip()
    if raw_text:
        return " ".join(raw_text.split())[:_ERROR_MESSAGE_MAX_CHARS]
    return "Request failed without an error payload"


def _route_of(path: str) -> tuple[str, str | None]:
    """Return *path* with its ids replaced by placeholders, plus the guild id."""
    guild_id: str | None = None
    route: list[str] = []
    previous = ""
    for segment in path.split("/"):
        if segment.isdigit():
            name = _ROUTE_PARAMS.get(previous, "id")
            if name == "guild_id" and guild_id is None:
                guild_id = segment
            route.append(f"{{{name}}}")
        else:
            route.append(segment)
        previous = segment
    return "/".join(route), guild_id


def _encode_query(params: Mapping[str, Any] | None) -> dict[str, str] | None:
    # None values are omitted; booleans are sent lowercase like the API expects.
    if not params:
        return None
    query: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            query[key] = "true" if value else "false"
        else:
            query[key] = str(value)
    return query or None


class RestClient:
    """Authenticated JSON client for the guild API."""

    def __init__(
        self,
        token: str | None,
        *,
        base_url: str = API_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent
        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def http_client(self) -> httpx.AsyncClient:
        return self._http_client

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http_client.aclose()

    def _headers(self, reason: str | None) -> dict[str, str]:
        headers = {"User-Agent": self._user_agent}
        if self._token:
            headers["Authorization"] = f"Bot {self._token}"
        if reason:
            headers[AUDIT_LOG_REASON_HEADER] = quote(reason, safe="")
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_body: Mapping[str, Any] | None = None,
        reason: str | None = None,
    ) -> Any:
        normalized_path = path if path.startswith("/") else f"/{path}"
        url = f"{self._base_url}{normalized_path}"
        method = method.upper()

        route, guild_id = _route_of(normalized_path)
        with http_span(method, route, guild_id=guild_id):
            logger.debug("%s %s params=%s", method, normalized_path, params)
            try:
                response = await self._http_client.request(
                    method,
                    url,
                    params=_encode_query(params),
                    json=dict(json_body) if json_body is not None else None,
                    headers=self._headers(reason),
                )
            except httpx.HTTPError as exc:
                raise RequestError(f"{method} {normalized_path} failed: {exc}") from exc

            if response.status_code < 200 or response.status_code >= 300:
                raise HTTPRequestError(
                    status_code=response.status_code,
                    message=_safe_error_message(response),
                    method=method,
                    path=normalized_path,
                )

            if response.status_code == 204 or not response.content:
                return None

            try:
                return response.json()
            except ValueError as exc:
                raise RequestError(
                    f"{method} {normalized_path} returned invalid JSON for a successful response"
                ) from exc
