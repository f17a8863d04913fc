"""Tests for relay URL building, auth headers and request sending."""

from __future__ import annotations

import base64
import json
from datetime import date
from typing import TYPE_CHECKING

import httpx
import pytest

from noterelay.config import AuthType, PayloadMode
from noterelay.exceptions import RelayNetworkError
from noterelay.relay.client import RelayClient, auth_headers, build_url, payload_url
from noterelay.services.payload_service import FilePart, SyncPayload
from tests.conftest import RecordingHandler

if TYPE_CHECKING:
    from collections.abc import Callable

    from noterelay.config import SyncConfig


class TestBuildUrl:
    def test_single_slash_join_and_encoding(self) -> None:
        assert build_url("http://h/", "/v1/sync", "abc 1") == "http://h/v1/sync/abc%201"

    @pytest.mark.parametrize(
        ("base", "endpoint"),
        [
            ("http://h", "v1/sync"),
            ("http://h/", "v1/sync/"),
            ("http://h//", "//v1/sync//"),
            ("http://h", "/v1/sync"),
        ],
    )
    def test_slash_normalization(self, base: str, endpoint: str) -> None:
        assert build_url(base, endpoint) == "http://h/v1/sync"
        assert build_url(base, endpoint, "id") == "http://h/v1/sync/id"

    def test_identifier_slashes_are_encoded(self) -> None:
        assert build_url("http://h", "sync", "a/b?c") == "http://h/sync/a%2Fb%3Fc"

    def test_unicode_identifier(self) -> None:
        assert build_url("http://h", "sync", "노트") == "http://h/sync/%EB%85%B8%ED%8A%B8"


class TestPayloadUrl:
    def test_json_mode_has_no_identifier(self, sync_config: SyncConfig) -> None:
        payload = SyncPayload(mode=PayloadMode.JSON, identifier="abc", json_body={})
        assert payload_url(sync_config, payload) == "https://relay.example.com/api/notes"

    def test_binary_mode_appends_identifier(self, sync_config: SyncConfig) -> None:
        payload = SyncPayload(
            mode=PayloadMode.BINARY,
            identifier="abc",
            file_part=FilePart(filename="a.md", content=b""),
        )
        assert payload_url(sync_config, payload) == "https://relay.example.com/api/notes/abc"


class TestAuthHeaders:
    def test_none_mode(self, make_config: Callable[..., SyncConfig]) -> None:
        assert auth_headers(make_config(auth_type=AuthType.NONE, auth_token="t")) == {}

    def test_basic_mode(self, make_config: Callable[..., SyncConfig]) -> None:
        config = make_config(
            auth_type=AuthType.BASIC, basic_username="alice", basic_password="pw"
        )
        expected = base64.b64encode(b"alice:pw").decode()
        assert auth_headers(config) == {"Authorization": f"Basic {expected}"}

    def test_basic_mode_with_empty_password(self, make_config: Callable[..., SyncConfig]) -> None:
        config = make_config(auth_type=AuthType.BASIC, basic_username="alice", basic_password="")
        assert auth_headers(config) == {}

    def test_token_mode(self, make_config: Callable[..., SyncConfig]) -> None:
        config = make_config(auth_type=AuthType.TOKEN, auth_token="tok")
        assert auth_headers(config) == {"Authorization": "Bearer tok"}

    def test_token_mode_without_token(self, make_config: Callable[..., SyncConfig]) -> None:
        assert auth_headers(make_config(auth_type=AuthType.TOKEN)) == {}


class TestRelayClientSend:
    async def test_posts_json_body(
        self, make_relay_client: Callable[[RecordingHandler], RelayClient]
    ) -> None:
        handler = RecordingHandler(json_data={"ok": True})
        client = make_relay_client(handler)
        payload = SyncPayload(mode=PayloadMode.JSON, identifier="abc", json_body={"title": "노트"})

        response = await client.send("http://h/sync", payload, {"Authorization": "Bearer t"})

        assert response.status_code == 200
        request = handler.requests[0]
        assert request.method == "POST"
        assert request.headers["content-type"] == "application/json"
        assert request.headers["authorization"] == "Bearer t"
        assert json.loads(request.content.decode("utf-8")) == {"title": "노트"}

    async def test_error_status_is_returned(
        self, make_relay_client: Callable[[RecordingHandler], RelayClient]
    ) -> None:
        client = make_relay_client(RecordingHandler(status_code=401))
        payload = SyncPayload(mode=PayloadMode.JSON, identifier="abc", json_body={})
        response = await client.send("http://h/sync", payload, {})
        assert response.status_code == 401

    async def test_transport_error_is_wrapped(
        self, make_relay_client: Callable[[RecordingHandler], RelayClient]
    ) -> None:
        client = make_relay_client(RecordingHandler(error=httpx.ConnectError("refused")))
        payload = SyncPayload(mode=PayloadMode.JSON, identifier="abc", json_body={})
        with pytest.raises(RelayNetworkError) as exc_info:
            await client.send("http://h/sync", payload, {})
        assert isinstance(exc_info.value.cause, httpx.ConnectError)
        assert exc_info.value.url == "http://h/sync"

    async def test_unencodable_header_is_wrapped(
        self, make_relay_client: Callable[[RecordingHandler], RelayClient]
    ) -> None:
        handler = RecordingHandler()
        client = make_relay_client(handler)
        payload = SyncPayload(mode=PayloadMode.JSON, identifier="abc", json_body={})
        with pytest.raises(RelayNetworkError) as exc_info:
            await client.send("http://h/sync", payload, {"Authorization": "Bearer tökén"})
        assert isinstance(exc_info.value.cause, UnicodeEncodeError)
        assert handler.requests == []

    async def test_dates_in_json_body_are_iso_strings(
        self, make_relay_client: Callable[[RecordingHandler], RelayClient]
    ) -> None:
        handler = RecordingHandler()
        client = make_relay_client(handler)
        payload = SyncPayload(
            mode=PayloadMode.JSON, identifier="abc", json_body={"created": date(2024, 5, 1)}
        )
        await client.send("http://h/sync", payload, {})
        assert json.loads(handler.requests[0].content) == {"created": "2024-05-01"}

    async def test_does_not_mutate_headers(
        self, make_relay_client: Callable[[RecordingHandler], RelayClient]
    ) -> None:
        client = make_relay_client(RecordingHandler())
        headers: dict[str, str] = {}
        payload = SyncPayload(mode=PayloadMode.JSON, identifier="abc", json_body={})
        await client.send("http://h/sync", payload, headers)
        assert headers == {}

    async def test_owned_client_is_closed(self) -> None:
        async with RelayClient(timeout=5.0) as client:
            inner = client.client
        assert inner.is_closed
