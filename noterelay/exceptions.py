"""Error types for the relay engine.

Convention:
- Exceptions (``NoteRelayError`` subclasses) are raised inside components for
  faults the component cannot handle itself (unreadable documents, transport
  failures).
- ``SyncOrchestrator`` converts every one of them into a ``SyncOutcome``
  carrying a ``SyncErrorKind``; nothing escapes a sync operation.
"""

from __future__ import annotations

from enum import StrEnum


class SyncErrorKind(StrEnum):
    """Failure categories reported to the operator."""

    CONFIGURATION_INCOMPLETE = "configuration_incomplete"
    NETWORK_FAILURE = "network_failure"
    SERVER_REJECTED = "server_rejected"
    RESPONSE_UNPARSEABLE = "response_unparseable"
    DOCUMENT_UNAVAILABLE = "document_unavailable"


class NoteRelayError(Exception):
    """Base class for relay engine errors."""


class DocumentStoreError(NoteRelayError):
    """Raised when a document cannot be read from or written to its store."""


class RelayNetworkError(NoteRelayError):
    """Raised when the relay request fails below the HTTP layer.

    Timeouts, DNS failures, refused connections and header values httpx cannot
    encode all end up here; an HTTP error status does not.
    """

    def __init__(self, url: str, cause: Exception) -> None:
        super().__init__(f"Request to {url} failed: {cause}")
        self.url = url
        self.cause = cause
