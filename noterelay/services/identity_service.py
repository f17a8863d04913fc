"""Stable note identifiers stored in front matter."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from noterelay.filesystem.frontmatter import is_empty_value, parse_document, set_field

if TYPE_CHECKING:
    from noterelay.filesystem.document_store import DocumentStore

logger = logging.getLogger(__name__)


def new_identifier() -> str:
    return str(uuid.uuid4())


async def read_identifier(store: DocumentStore, path: str, field_name: str) -> str | None:
    """Return the identifier currently stored in the note, or None."""
    value = parse_document(await store.read(path)).metadata.get(field_name)
    if is_empty_value(value):
        return None
    return str(value)


async def ensure_identifier(
    store: DocumentStore, path: str, field_name: str
) -> tuple[str, bool]:
    """Get the note's identifier, assigning a fresh UUID when it has none.

    Returns ``(identifier, created)``.  The write never clobbers a value set
    by a concurrent writer: the note is re-read just before the write, the
    field is only set if still empty, and the value read back afterwards wins.
    """
    existing = await read_identifier(store, path, field_name)
    if existing is not None:
        return existing, False

    candidate = new_identifier()
    current = await store.read(path)
    updated = set_field(current, field_name, candidate, overwrite=False)
    if updated != current:
        await store.write(path, updated)

    stored = await read_identifier(store, path, field_name)
    if stored is None:
        logger.warning(
            "Could not persist %s in %s; using unsaved identifier %s", field_name, path, candidate
        )
        return candidate, True
    if stored != candidate:
        logger.info("%s already had %s=%s from another writer", path, field_name, stored)
        return stored, False
    logger.info("Assigned %s=%s to %s", field_name, candidate, path)
    return candidate, True


async def get_or_create_identifier(store: DocumentStore, path: str, field_name: str) -> str:
    """Return the note's identifier, creating and persisting one if needed."""
    identifier, _created = await ensure_identifier(store, path, field_name)
    return identifier
