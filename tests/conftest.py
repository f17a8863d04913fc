"""Shared test fixtures for NoteRelay."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from typing import Any

import httpx
import pytest

from noterelay.config import SyncConfig
from noterelay.exceptions import DocumentStoreError
from noterelay.relay.client import RelayClient


class FakeDocumentStore:
    """In-memory document store that records every write."""

    def __init__(self, documents: dict[str, str] | None = None) -> None:
        self.documents: dict[str, str] = dict(documents or {})
        self.writes: list[tuple[str, str]] = []
        self.reads: list[str] = []
        self.vault_root: str | None = "/vault"
        self.fail_writes = False

    async def read(self, path: str) -> str:
        self.reads.append(path)
        if path not in self.documents:
            raise DocumentStoreError(f"Cannot read {path}: not found")
        return self.documents[path]

    async def read_bytes(self, path: str) -> bytes:
        return (await self.read(path)).encode("utf-8")

    async def write(self, path: str, text: str) -> None:
        if self.fail_writes:
            raise DocumentStoreError(f"Cannot write {path}: read-only")
        self.writes.append((path, text))
        self.documents[path] = text

    def absolute_path(self, path: str) -> str | None:
        if self.vault_root is None:
            return None
        return f"{self.vault_root}/{path}"


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays a response."""

    def __init__(
        self,
        status_code: int = 200,
        json_data: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.status_code = status_code
        self.json_data = json_data
        self.content = content
        self.headers = headers
        self.error = error
        self.requests: list[httpx.Request] = []
        self.on_request: Callable[[httpx.Request], None] | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.on_request is not None:
            self.on_request(request)
        if self.error is not None:
            raise self.error
        if self.json_data is not None:
            return httpx.Response(self.status_code, json=self.json_data, headers=self.headers)
        return httpx.Response(self.status_code, content=self.content or b"", headers=self.headers)


@pytest.fixture
def store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def sync_config() -> SyncConfig:
    return SyncConfig(server_url="https://relay.example.com/", sync_endpoint="/api/notes")


@pytest.fixture
def make_config(sync_config: SyncConfig) -> Callable[..., SyncConfig]:
    def _make(**changes: Any) -> SyncConfig:
        return replace(sync_config, **changes)

    return _make


@pytest.fixture
def make_relay_client() -> Callable[[RecordingHandler], RelayClient]:
    def _make(handler: RecordingHandler) -> RelayClient:
        return RelayClient(httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    return _make
