"""Construction of the request body sent to the relay server."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import TYPE_CHECKING, Any

from noterelay.config import PayloadMode
from noterelay.filesystem.frontmatter import parse_document, strip_frontmatter

if TYPE_CHECKING:
    from noterelay.config import SyncConfig
    from noterelay.filesystem.document_store import DocumentStore

logger = logging.getLogger(__name__)

FILE_PART_NAME = "note"
FILE_MEDIA_TYPE = "text/markdown"


@dataclass(frozen=True)
class FilePart:
    """A single multipart file upload."""

    filename: str
    content: bytes
    media_type: str = FILE_MEDIA_TYPE
    field_name: str = FILE_PART_NAME


@dataclass(frozen=True)
class SyncPayload:
    """Request body for one relay upload.

    Exactly one of ``json_body`` and ``file_part`` is set, matching ``mode``.
    """

    mode: PayloadMode
    identifier: str
    json_body: dict[str, Any] | None = None
    file_part: FilePart | None = None


def to_json_value(value: object) -> object:
    """Convert YAML-loaded values into JSON-serializable ones."""
    if isinstance(value, datetime | date | time):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_json_value(v) for k, v in value.items()}
    if isinstance(value, list | tuple | set):
        return [to_json_value(v) for v in value]
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def build_json_body(
    text: str,
    path: str,
    identifier: str,
    config: SyncConfig,
    absolute_path: str | None = None,
) -> dict[str, Any]:
    """Assemble the structured upload object for a note.

    Front matter fields are merged in after the explicit fields and never
    replace them.
    """
    body: dict[str, Any] = {config.note_id_field_name: identifier}
    if absolute_path:
        body["file_absolute_path"] = absolute_path
    body[config.file_name_field_name] = posixpath.basename(path)
    body["file_path"] = path
    if config.send_file_content:
        if config.include_front_matter_in_content:
            body[config.file_content_field_name] = text
        else:
            body[config.file_content_field_name] = strip_frontmatter(text)

    body["metadata"] = {
        "file_id_field_name": config.note_id_field_name,
        "file_name_field_name": config.file_name_field_name,
        "file_content_field_name": config.file_content_field_name,
        "include_front_matter_in_content": config.include_front_matter_in_content,
        "send_file_content": config.send_file_content,
    }

    for key, value in parse_document(text).metadata.items():
        if key in body:
            logger.debug("Front matter field %r shadowed by payload field", key)
            continue
        body[key] = to_json_value(value)
    return body


async def build_payload(
    store: DocumentStore, path: str, identifier: str, config: SyncConfig
) -> SyncPayload:
    """Read the note and build the payload for the configured mode."""
    if config.payload_mode is PayloadMode.BINARY:
        raw = await store.read_bytes(path)
        return SyncPayload(
            mode=PayloadMode.BINARY,
            identifier=identifier,
            file_part=FilePart(filename=posixpath.basename(path), content=raw),
        )

    text = await store.read(path)
    try:
        absolute_path = store.absolute_path(path)
    except (AttributeError, NotImplementedError, OSError):
        absolute_path = None
    return SyncPayload(
        mode=PayloadMode.JSON,
        identifier=identifier,
        json_body=build_json_body(text, path, identifier, config, absolute_path),
    )
