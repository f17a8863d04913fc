"""Document storage backends used by the relay engine."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from noterelay.exceptions import DocumentStoreError

logger = logging.getLogger(__name__)


@runtime_checkable
class DocumentStore(Protocol):
    """Read/write access to note documents addressed by vault-relative path."""

    async def read(self, path: str) -> str:
        """Return the current text of the document."""
        ...

    async def read_bytes(self, path: str) -> bytes:
        """Return the current raw bytes of the document."""
        ...

    async def write(self, path: str, text: str) -> None:
        """Replace the whole document text."""
        ...

    def absolute_path(self, path: str) -> str | None:
        """Return an absolute filesystem path, or None if the store has none."""
        ...


@dataclass
class FileDocumentStore:
    """Documents stored as UTF-8 files under a vault directory."""

    vault_dir: Path

    def _validate_path(self, rel_path: str) -> Path:
        """Resolve *rel_path* inside the vault, rejecting traversal."""
        full_path = (self.vault_dir / rel_path).resolve()
        if not full_path.is_relative_to(self.vault_dir.resolve()):
            raise DocumentStoreError(f"Path traversal detected: {rel_path}")
        return full_path

    async def read(self, path: str) -> str:
        raw = await self.read_bytes(path)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DocumentStoreError(f"{path} is not valid UTF-8") from exc

    async def read_bytes(self, path: str) -> bytes:
        full_path = self._validate_path(path)
        try:
            return full_path.read_bytes()
        except OSError as exc:
            raise DocumentStoreError(f"Cannot read {path}: {exc}") from exc

    async def write(self, path: str, text: str) -> None:
        """Write *text* through a temporary file so readers never see a partial note."""
        full_path = self._validate_path(path)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=full_path.parent, prefix=f".{full_path.name}.")
            try:
                with os.fdopen(fd, "wb") as tmp:
                    tmp.write(text.encode("utf-8"))
                os.replace(tmp_name, full_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise DocumentStoreError(f"Cannot write {path}: {exc}") from exc
        logger.debug("Wrote %s (%d chars)", path, len(text))

    def absolute_path(self, path: str) -> str | None:
        try:
            return str(self._validate_path(path))
        except DocumentStoreError:
            return None
