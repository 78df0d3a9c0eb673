"""Exchange the app-level token for a one-time realtime connection URL.

``apps.connections.open`` answers ``{"ok": true, "url": "wss://..."}`` on
success and ``{"ok": false, "error": "<code>"}`` otherwise. Every outcome is
classified into a ``ConnectionUrlResult``; nothing is retried here.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from logger_bot.models.results import ConnectionUrlErrorKind, ConnectionUrlResult
from logger_bot.utils.logging import LogEventNames
from logger_bot.utils.security import redact_url

log = structlog.get_logger()

CONNECTIONS_OPEN_METHOD = "apps.connections.open"
REALTIME_SCHEMES = frozenset({"ws", "wss"})


class ConnectionsOpenResponse(BaseModel):
    """Expected shape of the ``apps.connections.open`` response body."""

    ok: bool
    url: str | None = None
    error: str | None = None


def classify_connection_response(body: str | bytes) -> ConnectionUrlResult:
    """Classify an ``apps.connections.open`` response body.

    A body that is not JSON or has the wrong shape is ``malformed``. A body
    with ``ok: false`` is ``remote`` (carrying the error code) or ``unknown``
    when no code is given. A successful body without a URL is ``missing_url``,
    and one whose URL is not a valid ``wss``/``ws`` address is ``malformed``.

    Args:
        body: Raw response body.

    Returns:
        Success with the URL, or the classified failure.
    """
    try:
        data: Any = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return ConnectionUrlResult.failure(
            ConnectionUrlErrorKind.MALFORMED, f"response is not JSON: {e}"
        )

    try:
        response = ConnectionsOpenResponse.model_validate(data)
    except ValidationError as e:
        return ConnectionUrlResult.failure(
            ConnectionUrlErrorKind.MALFORMED,
            f"unexpected response shape ({e.error_count()} errors)",
        )

    if not response.ok:
        if response.error is None:
            return ConnectionUrlResult.failure(ConnectionUrlErrorKind.UNKNOWN)
        return ConnectionUrlResult.failure(ConnectionUrlErrorKind.REMOTE, response.error)

    if response.url is None:
        return ConnectionUrlResult.failure(ConnectionUrlErrorKind.MISSING_URL)

    problem = validate_realtime_url(response.url)
    if problem is not None:
        return ConnectionUrlResult.failure(ConnectionUrlErrorKind.MALFORMED, problem)

    return ConnectionUrlResult.success(response.url)


def validate_realtime_url(url: str) -> str | None:
    """Return a description of what is wrong with ``url``, or None if valid."""
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        return f"invalid url: {e}"

    if parsed.scheme not in REALTIME_SCHEMES:
        return f"unsupported url scheme: {parsed.scheme or '(none)'}"
    if not parsed.host:
        return "url has no host"
    return None


class ConnectionBootstrapper:
    """Obtain realtime connection URLs from the Web API.

    Example:
        async with ConnectionBootstrapper() as bootstrapper:
            result = await bootstrapper.open(app_token)
            url = result.unwrap()
    """

    def __init__(
        self,
        api_base_url: str = "https://slack.com/api/",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the bootstrapper.

        Args:
            api_base_url: Web API base URL
            timeout: Request timeout in seconds
            client: Optional pre-built HTTP client (owned by the caller)
        """
        self._endpoint = f"{api_base_url.rstrip('/')}/{CONNECTIONS_OPEN_METHOD}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def open(self, app_token: str) -> ConnectionUrlResult:
        """Request a new realtime connection URL.

        Args:
            app_token: App-level token (``xapp-...``)

        Returns:
            The classified outcome. Network and timeout errors become
            ``transport`` failures, the only kind worth retrying.
        """
        log.debug(LogEventNames.BOOTSTRAP_START, endpoint=self._endpoint)

        try:
            response = await self._client.post(
                self._endpoint,
                headers={"Authorization": f"Bearer {app_token}"},
            )
        except httpx.HTTPError as e:
            log.warning(
                LogEventNames.BOOTSTRAP_FAILED,
                error_kind=ConnectionUrlErrorKind.TRANSPORT.value,
                error=str(e),
            )
            return ConnectionUrlResult.failure(
                ConnectionUrlErrorKind.TRANSPORT, f"{type(e).__name__}: {e}"
            )

        result = classify_connection_response(response.content)
        error = result.error
        if error is None:
            log.info(
                LogEventNames.BOOTSTRAP_COMPLETE,
                url=redact_url(result.url or ""),
            )
        else:
            log.warning(
                LogEventNames.BOOTSTRAP_FAILED,
                status_code=response.status_code,
                error_kind=error.kind.value,
                detail=error.detail,
            )
        return result

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> ConnectionBootstrapper:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
