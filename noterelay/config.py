"""Relay configuration loaded from environment variables and the CLI config file."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_NOTE_ID_FIELD_NAME = "file_id"


class AuthType(StrEnum):
    NONE = "none"
    BASIC = "basic"
    TOKEN = "token"


class PayloadMode(StrEnum):
    JSON = "json"
    BINARY = "binary"


def parse_exclude_patterns(raw: str | list[str] | tuple[str, ...] | None) -> tuple[str, ...]:
    """Split a comma-separated pattern list, trimming and dropping empty entries."""
    if raw is None:
        return ()
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    return tuple(p.strip() for p in items if p and p.strip())


@dataclass(frozen=True)
class SyncConfig:
    """Immutable settings snapshot used for exactly one sync operation."""

    server_url: str = ""
    sync_endpoint: str = ""
    auth_type: AuthType = AuthType.NONE
    basic_username: str = ""
    basic_password: str = ""
    auth_token: str = ""
    note_id_field_name: str = DEFAULT_NOTE_ID_FIELD_NAME
    file_name_field_name: str = "file_name"
    file_content_field_name: str = "content"
    enable_file_id: bool = True
    send_file_content: bool = True
    include_front_matter_in_content: bool = False
    payload_mode: PayloadMode = PayloadMode.JSON
    exclude_patterns: tuple[str, ...] = ()
    auto_sync_on_modify: bool = False
    overwrite_id_from_response: bool = False
    request_timeout: float = 30.0

    @property
    def is_server_configured(self) -> bool:
        return bool(self.server_url.strip()) and bool(self.sync_endpoint.strip())

    @property
    def has_sendable_token(self) -> bool:
        """HTTP header values must be ASCII; basic credentials are base64-encoded first."""
        return self.auth_type != AuthType.TOKEN or self.auth_token.isascii()


class Settings(BaseSettings):
    """NoteRelay settings."""

    model_config = SettingsConfigDict(
        env_prefix="NOTERELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    vault_dir: Path = Path(".")

    # Server
    server_url: str = ""
    sync_endpoint: str = ""
    request_timeout: float = Field(default=30.0, gt=0)
    payload_mode: PayloadMode = PayloadMode.JSON

    # Auth
    auth_type: AuthType = AuthType.NONE
    basic_username: str = ""
    basic_password: str = ""
    auth_token: str = ""

    # Identifier and payload fields
    note_id_field_name: str = Field(default=DEFAULT_NOTE_ID_FIELD_NAME, min_length=1)
    file_name_field_name: str = Field(default="file_name", min_length=1)
    file_content_field_name: str = Field(default="content", min_length=1)
    enable_file_id: bool = True
    send_file_content: bool = True
    include_front_matter_in_content: bool = False

    # Behaviour
    exclude_patterns: Annotated[tuple[str, ...], NoDecode] = ()
    auto_sync_on_modify: bool = False
    overwrite_id_from_response: bool = False

    @field_validator("exclude_patterns", mode="before")
    @classmethod
    def _split_patterns(cls, value: object) -> tuple[str, ...]:
        if value is None or isinstance(value, str | list | tuple):
            return parse_exclude_patterns(value)  # type: ignore[arg-type]
        raise ValueError("exclude_patterns must be a string or a list of strings")

    def snapshot(self) -> SyncConfig:
        """Freeze the current settings for one sync operation."""
        return SyncConfig(
            server_url=self.server_url,
            sync_endpoint=self.sync_endpoint,
            auth_type=self.auth_type,
            basic_username=self.basic_username,
            basic_password=self.basic_password,
            auth_token=self.auth_token,
            note_id_field_name=self.note_id_field_name,
            file_name_field_name=self.file_name_field_name,
            file_content_field_name=self.file_content_field_name,
            enable_file_id=self.enable_file_id,
            send_file_content=self.send_file_content,
            include_front_matter_in_content=self.include_front_matter_in_content,
            payload_mode=self.payload_mode,
            exclude_patterns=tuple(self.exclude_patterns),
            auto_sync_on_modify=self.auto_sync_on_modify,
            overwrite_id_from_response=self.overwrite_id_from_response,
            request_timeout=self.request_timeout,
        )
