"""YAML front matter parser/serializer for relayed notes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import yaml
from frontmatter.default_handlers import YAMLHandler

logger = logging.getLogger(__name__)

DELIMITER = "---"

FRONTMATTER_YAML_ERROR = "frontmatter_yaml_error"
FRONTMATTER_NOT_MAPPING = "frontmatter_not_mapping"

_handler = YAMLHandler()


@dataclass(frozen=True)
class ParsedDocument:
    """A note split into its front matter mapping and body text."""

    metadata: dict[str, Any] = field(default_factory=dict)
    body: str = ""
    error: str | None = None
    has_block: bool = False


def is_empty_value(value: object) -> bool:
    """Return True for values that do not count as a set field.

    ``None`` and blank strings are empty; ``0`` and ``False`` are not.
    """
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _split_block(text: str) -> tuple[str, str] | None:
    """Locate a leading ``---`` delimited block.

    Returns ``(yaml_block, body)`` or None when the text has no block.  Both
    delimiter lines must consist of exactly ``---`` (a trailing CR is allowed).
    """
    first_newline = text.find("\n")
    if first_newline == -1:
        return None
    if text[:first_newline].rstrip("\r") != DELIMITER:
        return None

    search_from = first_newline + 1
    while True:
        next_newline = text.find("\n", search_from)
        line_end = len(text) if next_newline == -1 else next_newline
        if text[search_from:line_end].rstrip("\r") == DELIMITER:
            yaml_block = text[first_newline + 1 : search_from]
            body = "" if next_newline == -1 else text[next_newline + 1 :]
            return yaml_block, body
        if next_newline == -1:
            return None
        search_from = next_newline + 1


def parse_document(text: str) -> ParsedDocument:
    """Parse note text into front matter and body.

    Malformed YAML never raises: the metadata falls back to an empty mapping
    and ``error`` names the failure so callers can avoid rewriting the block.
    """
    split = _split_block(text)
    if split is None:
        return ParsedDocument(metadata={}, body=text)

    yaml_block, body = split
    try:
        loaded = _handler.load(yaml_block)
    except (yaml.YAMLError, ValueError, TypeError) as exc:
        logger.warning("Ignoring malformed front matter: %s", exc)
        return ParsedDocument(metadata={}, body=body, error=FRONTMATTER_YAML_ERROR, has_block=True)

    if loaded is None:
        return ParsedDocument(metadata={}, body=body, has_block=True)
    if not isinstance(loaded, dict):
        logger.warning("Ignoring front matter that is not a mapping (%s)", type(loaded).__name__)
        return ParsedDocument(metadata={}, body=body, error=FRONTMATTER_NOT_MAPPING, has_block=True)
    metadata = {str(key): value for key, value in loaded.items()}
    return ParsedDocument(metadata=metadata, body=body, has_block=True)


def serialize_document(metadata: dict[str, Any], body: str) -> str:
    """Serialize front matter and body back into note text.

    Key order is preserved.  An empty mapping produces the body alone, unless the
    body itself starts with a block; then an empty block keeps it from being
    read as front matter.
    """
    if not metadata:
        if _split_block(body) is not None:
            return f"{DELIMITER}\n{DELIMITER}\n{body}"
        return body
    dumped = _handler.export(metadata, sort_keys=False)
    return f"{DELIMITER}\n{dumped}\n{DELIMITER}\n{body}"


def set_field(text: str, field_name: str, value: object, *, overwrite: bool) -> str:
    """Return *text* with front matter field *field_name* set to *value*.

    With ``overwrite=False`` an existing non-empty value is kept and the input
    text is returned as-is.  Text whose front matter cannot be parsed is also
    returned unchanged so a broken block is never replaced wholesale.
    """
    parsed = parse_document(text)
    if parsed.error is not None:
        logger.warning("Not rewriting field %r: front matter is unreadable", field_name)
        return text

    current = parsed.metadata.get(field_name)
    if not overwrite and not is_empty_value(current):
        return text
    if field_name in parsed.metadata and current == value:
        return text

    metadata = dict(parsed.metadata)
    metadata[field_name] = value
    return serialize_document(metadata, parsed.body)


def strip_frontmatter(text: str) -> str:
    """Remove one leading front matter block and a single blank line after it."""
    split = _split_block(text)
    if split is None:
        return text
    body = split[1]
    if body.startswith("\r\n"):
        return body[2:]
    if body.startswith("\n"):
        return body[1:]
    return body
