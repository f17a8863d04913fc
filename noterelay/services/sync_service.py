"""Sync orchestration: one note from change event to reconciled identifier."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from noterelay.exceptions import DocumentStoreError, RelayNetworkError, SyncErrorKind
from noterelay.relay.client import auth_headers, payload_url
from noterelay.services.exclusion_service import is_excluded
from noterelay.services.identity_service import ensure_identifier, get_or_create_identifier
from noterelay.services.payload_service import build_payload
from noterelay.services.reconcile_service import reconcile_response

if TYPE_CHECKING:
    from collections.abc import Callable

    from noterelay.config import SyncConfig
    from noterelay.filesystem.document_store import DocumentStore
    from noterelay.relay.client import RelayClient

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


class SyncStatus(StrEnum):
    SYNCED = "synced"
    IDENTIFIER_ASSIGNED = "identifier_assigned"
    IDENTIFIER_PRESENT = "identifier_present"
    EXCLUDED = "excluded"
    DISABLED = "disabled"
    SKIPPED_IN_FLIGHT = "skipped_in_flight"
    FAILED = "failed"


@dataclass(frozen=True)
class DocumentChanged:
    """A note was modified by the user or another process."""

    path: str


@dataclass(frozen=True)
class SyncOutcome:
    """Result of one orchestrated operation, always produced instead of raising."""

    path: str
    status: SyncStatus
    identifier: str | None = None
    error: SyncErrorKind | None = None
    status_code: int | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is not SyncStatus.FAILED


class Notifier(Protocol):
    """Receives operator-facing notifications for finished operations."""

    def notify(self, outcome: SyncOutcome) -> None: ...


class LoggingNotifier:
    """Reports outcomes through the module logger."""

    def notify(self, outcome: SyncOutcome) -> None:
        if outcome.ok:
            logger.info("%s: %s", outcome.path, outcome.message)
        else:
            logger.warning("%s: %s", outcome.path, outcome.message)


class SyncOrchestrator:
    """Runs exclusion, identity, payload, upload and reconciliation for a note.

    ``config_provider`` is called once per operation, so settings changed while
    a request is in flight only affect later operations.  A path that is
    already being synced is skipped rather than synced twice concurrently.
    """

    def __init__(
        self,
        store: DocumentStore,
        relay_client: RelayClient,
        config_provider: Callable[[], SyncConfig],
        notifier: Notifier | None = None,
    ) -> None:
        self.store = store
        self.relay_client = relay_client
        self.config_provider = config_provider
        self.notifier = notifier or LoggingNotifier()
        self._in_flight: set[str] = set()

    def _finish(self, outcome: SyncOutcome) -> SyncOutcome:
        self.notifier.notify(outcome)
        return outcome

    async def handle_event(self, event: DocumentChanged) -> SyncOutcome | None:
        """Sync a changed note if auto-sync applies to it; None when ignored."""
        config = self.config_provider()
        if not config.auto_sync_on_modify:
            return None
        if not event.path.lower().endswith(MARKDOWN_SUFFIX):
            return None
        if is_excluded(event.path, config.exclude_patterns):
            logger.debug("Ignoring change to excluded note %s", event.path)
            return None
        return await self.sync_document(event.path, config)

    async def generate_identifier(self, path: str) -> SyncOutcome:
        """Make sure the note has an identifier, without contacting the server."""
        config = self.config_provider()
        if is_excluded(path, config.exclude_patterns):
            return self._finish(
                SyncOutcome(path, SyncStatus.EXCLUDED, message="excluded from sync by pattern")
            )
        try:
            identifier, created = await ensure_identifier(
                self.store, path, config.note_id_field_name
            )
        except DocumentStoreError as exc:
            return self._finish(
                SyncOutcome(
                    path,
                    SyncStatus.FAILED,
                    error=SyncErrorKind.DOCUMENT_UNAVAILABLE,
                    message=str(exc),
                )
            )
        if created:
            return self._finish(
                SyncOutcome(
                    path,
                    SyncStatus.IDENTIFIER_ASSIGNED,
                    identifier=identifier,
                    message=f"identifier {identifier} generated",
                )
            )
        return self._finish(
            SyncOutcome(
                path,
                SyncStatus.IDENTIFIER_PRESENT,
                identifier=identifier,
                message=f"identifier {identifier} already present",
            )
        )

    async def sync_document(self, path: str, config: SyncConfig | None = None) -> SyncOutcome:
        """Upload one note and reconcile its identifier.  Never raises.

        *config* is the snapshot to use; a fresh one is taken when omitted.
        """
        if path in self._in_flight:
            logger.debug("Sync of %s already running; skipping", path)
            return SyncOutcome(
                path, SyncStatus.SKIPPED_IN_FLIGHT, message="sync already in progress"
            )
        self._in_flight.add(path)
        try:
            return self._finish(await self._sync(path, config or self.config_provider()))
        finally:
            self._in_flight.discard(path)

    async def _sync(self, path: str, config: SyncConfig) -> SyncOutcome:
        if is_excluded(path, config.exclude_patterns):
            return SyncOutcome(path, SyncStatus.EXCLUDED, message="excluded from sync by pattern")
        if not config.enable_file_id or not config.note_id_field_name:
            return SyncOutcome(path, SyncStatus.DISABLED, message="file identifiers are disabled")
        if not config.is_server_configured:
            return SyncOutcome(
                path,
                SyncStatus.FAILED,
                error=SyncErrorKind.CONFIGURATION_INCOMPLETE,
                message="server URL or sync endpoint is not configured",
            )
        if not config.has_sendable_token:
            return SyncOutcome(
                path,
                SyncStatus.FAILED,
                error=SyncErrorKind.CONFIGURATION_INCOMPLETE,
                message="auth token contains non-ASCII characters and cannot be sent",
            )

        field_name = config.note_id_field_name
        identifier: str | None = None
        try:
            identifier = await get_or_create_identifier(self.store, path, field_name)
            payload = await build_payload(self.store, path, identifier, config)
            url = payload_url(config, payload)
            response = await self.relay_client.send(url, payload, auth_headers(config))

            if not response.is_success:
                return SyncOutcome(
                    path,
                    SyncStatus.FAILED,
                    identifier=identifier,
                    error=SyncErrorKind.SERVER_REJECTED,
                    status_code=response.status_code,
                    message=(
                        f"server responded {response.status_code}; "
                        f"keeping local identifier {identifier}"
                    ),
                )

            result = await reconcile_response(
                response,
                self.store,
                path,
                field_name,
                enabled=config.overwrite_id_from_response,
            )
        except RelayNetworkError as exc:
            return SyncOutcome(
                path,
                SyncStatus.FAILED,
                identifier=identifier,
                error=SyncErrorKind.NETWORK_FAILURE,
                message=f"{exc}; keeping local identifier {identifier}",
            )
        except DocumentStoreError as exc:
            return SyncOutcome(
                path,
                SyncStatus.FAILED,
                identifier=identifier,
                error=SyncErrorKind.DOCUMENT_UNAVAILABLE,
                message=str(exc),
            )

        if result.updated and result.identifier is not None:
            return SyncOutcome(
                path,
                SyncStatus.SYNCED,
                identifier=result.identifier,
                status_code=response.status_code,
                message=f"identifier updated from server response: {result.identifier}",
            )
        return SyncOutcome(
            path,
            SyncStatus.SYNCED,
            identifier=identifier,
            status_code=response.status_code,
            message=f"synced with identifier {identifier}",
        )
