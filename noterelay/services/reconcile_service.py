"""Applying server-assigned identifiers back to notes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from noterelay.filesystem.frontmatter import is_empty_value, parse_document, set_field

if TYPE_CHECKING:
    import httpx

    from noterelay.filesystem.document_store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """What reconciliation did with a response."""

    updated: bool
    identifier: str | None = None
    reason: str = ""


def extract_identifier(response: httpx.Response, field_name: str) -> tuple[str | None, str]:
    """Return ``(identifier, reason)`` from a relay response.

    The identifier is None whenever the response is not a successful JSON
    object carrying a non-empty value under *field_name*.
    """
    if not response.is_success:
        return None, f"status {response.status_code}"
    content_type = response.headers.get("content-type", "")
    if "application/json" not in content_type.lower():
        return None, "response is not JSON"
    try:
        data = response.json()
    except ValueError as exc:
        logger.warning("Relay response claims JSON but does not decode: %s", exc)
        return None, "invalid JSON"
    if not isinstance(data, dict):
        return None, "JSON body is not an object"
    value = data.get(field_name)
    if is_empty_value(value):
        return None, f"no {field_name} in response"
    return str(value).strip(), ""


async def reconcile_response(
    response: httpx.Response,
    store: DocumentStore,
    path: str,
    field_name: str,
    *,
    enabled: bool,
) -> ReconcileResult:
    """Overwrite the note's identifier with the server's, when policy allows.

    Every unusable response is a silent no-op.  The note is re-read right
    before the write so edits made during the request are kept.
    """
    if not enabled:
        return ReconcileResult(updated=False, reason="disabled")

    server_id, reason = extract_identifier(response, field_name)
    if server_id is None:
        logger.debug("Skipping reconciliation for %s: %s", path, reason)
        return ReconcileResult(updated=False, reason=reason)

    current = await store.read(path)
    current_id = parse_document(current).metadata.get(field_name)
    if not is_empty_value(current_id) and str(current_id) == server_id:
        return ReconcileResult(updated=False, identifier=server_id, reason="unchanged")

    updated = set_field(current, field_name, server_id, overwrite=True)
    if updated == current:
        return ReconcileResult(updated=False, identifier=server_id, reason="front matter unreadable")
    await store.write(path, updated)
    logger.info("Updated %s=%s in %s from server response", field_name, server_id, path)
    return ReconcileResult(updated=True, identifier=server_id)
