"""HTTP client for the note relay server."""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx

from noterelay.config import AuthType, PayloadMode
from noterelay.exceptions import RelayNetworkError
from noterelay.services.payload_service import to_json_value

if TYPE_CHECKING:
    from noterelay.config import SyncConfig
    from noterelay.services.payload_service import SyncPayload

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def build_url(base: str, endpoint: str, identifier: str | None = None) -> str:
    """Join server URL, endpoint path and optional identifier with single slashes.

    The identifier is percent-encoded as one path segment.
    """
    url = base.strip().rstrip("/")
    path = endpoint.strip().strip("/")
    if path:
        url = f"{url}/{path}"
    if identifier is not None:
        url = f"{url}/{quote(identifier, safe='')}"
    return url


def payload_url(config: SyncConfig, payload: SyncPayload) -> str:
    """Binary uploads carry the identifier in the URL; JSON uploads carry it in the body."""
    if payload.mode is PayloadMode.BINARY:
        return build_url(config.server_url, config.sync_endpoint, payload.identifier)
    return build_url(config.server_url, config.sync_endpoint)


def auth_headers(config: SyncConfig) -> dict[str, str]:
    """Return the Authorization header for the configured auth mode.

    Missing credentials yield no header rather than an error.
    """
    if config.auth_type == AuthType.BASIC:
        if config.basic_username and config.basic_password:
            raw = f"{config.basic_username}:{config.basic_password}".encode()
            return {"Authorization": f"Basic {base64.b64encode(raw).decode('ascii')}"}
        logger.debug("Basic auth selected but credentials incomplete; sending without auth")
        return {}
    if config.auth_type == AuthType.TOKEN:
        if config.auth_token:
            return {"Authorization": f"Bearer {config.auth_token}"}
        logger.debug("Token auth selected but no token set; sending without auth")
        return {}
    return {}


class RelayClient:
    """Posts note payloads to the relay server.

    The underlying ``httpx.AsyncClient`` may be injected (tests pass one built
    on ``httpx.MockTransport``); otherwise one is created and owned here.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(timeout=timeout)
        self.timeout = timeout

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> RelayClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def send(
        self, url: str, payload: SyncPayload, headers: dict[str, str]
    ) -> httpx.Response:
        """POST the payload once and return the raw response.

        HTTP error statuses are returned as-is; transport failures and header
        values that cannot be encoded raise ``RelayNetworkError``.
        """
        request_headers = dict(headers)
        try:
            if payload.mode is PayloadMode.BINARY:
                if payload.file_part is None:
                    msg = "Binary payload without a file part"
                    raise ValueError(msg)
                part = payload.file_part
                response = await self.client.post(
                    url,
                    headers=request_headers,
                    files={part.field_name: (part.filename, part.content, part.media_type)},
                    timeout=self.timeout,
                )
            else:
                response = await self.client.post(
                    url,
                    headers=request_headers,
                    json=to_json_value(payload.json_body or {}),
                    timeout=self.timeout,
                )
        except (httpx.HTTPError, UnicodeEncodeError) as exc:
            logger.warning("Relay request to %s failed: %s", url, exc)
            raise RelayNetworkError(url, exc) from exc
        logger.debug("Relay responded %d for %s", response.status_code, url)
        return response
