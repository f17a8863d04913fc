"""CLI for assigning note identifiers and relaying notes to a sync server."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from noterelay.config import AuthType, PayloadMode, Settings
from noterelay.filesystem.document_store import FileDocumentStore
from noterelay.relay.client import RelayClient
from noterelay.services.exclusion_service import is_excluded
from noterelay.services.sync_service import SyncOrchestrator, SyncOutcome

CONFIG_FILE = ".noterelay.json"


def load_config(dir_path: Path) -> dict[str, Any]:
    """Load relay config from file."""
    config_path = dir_path / CONFIG_FILE
    if not config_path.exists():
        return {}
    config: dict[str, Any] = json.loads(config_path.read_text())
    return config


def save_config(dir_path: Path, config: dict[str, Any]) -> None:
    """Save relay config to file."""
    config_path = dir_path / CONFIG_FILE
    config_path.write_text(json.dumps(config, indent=2))


def load_settings(vault_dir: Path) -> Settings:
    """Environment settings overridden by the vault's config file."""
    overrides = load_config(vault_dir)
    overrides["vault_dir"] = vault_dir
    return Settings(**overrides)


def _relative_to_vault(vault_dir: Path, raw_path: str) -> str:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        try:
            return candidate.resolve().relative_to(vault_dir).as_posix()
        except ValueError:
            return raw_path
    return candidate.as_posix()


def _print_outcome(outcome: SyncOutcome) -> None:
    marker = "ok" if outcome.ok else "FAILED"
    print(f"  [{marker}] {outcome.path}: {outcome.status.value} - {outcome.message}")


async def _run_paths(settings: Settings, command: str, paths: list[str]) -> list[SyncOutcome]:
    store = FileDocumentStore(settings.vault_dir)
    outcomes: list[SyncOutcome] = []
    async with RelayClient(timeout=settings.request_timeout) as relay_client:
        orchestrator = SyncOrchestrator(store, relay_client, settings.snapshot)
        for path in paths:
            if command == "sync":
                outcome = await orchestrator.sync_document(path)
            else:
                outcome = await orchestrator.generate_identifier(path)
            _print_outcome(outcome)
            outcomes.append(outcome)
    return outcomes


def _init(args: argparse.Namespace, vault_dir: Path) -> None:
    config = load_config(vault_dir)
    config["server_url"] = args.server
    config["sync_endpoint"] = args.endpoint
    config["auth_type"] = args.auth_type
    if args.username:
        config["basic_username"] = args.username
    if args.password:
        config["basic_password"] = args.password
    if args.token:
        config["auth_token"] = args.token
    if args.id_field:
        config["note_id_field_name"] = args.id_field
    if args.exclude is not None:
        config["exclude_patterns"] = args.exclude
    config["payload_mode"] = args.payload_mode
    config["overwrite_id_from_response"] = args.accept_server_id
    save_config(vault_dir, config)
    print(f"Initialized relay config in {vault_dir / CONFIG_FILE}")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="noterelay",
        description="Assign stable identifiers to notes and relay them to a sync server",
    )
    parser.add_argument("--dir", "-d", default=".", help="Vault directory (default: current)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")

    init_parser = subparsers.add_parser("init", help="Write relay configuration")
    init_parser.add_argument("--server", "-s", required=True, help="Server base URL")
    init_parser.add_argument("--endpoint", "-e", required=True, help="Sync endpoint path")
    init_parser.add_argument(
        "--auth-type", choices=[a.value for a in AuthType], default=AuthType.NONE.value
    )
    init_parser.add_argument("--username", "-u", help="Username for basic auth")
    init_parser.add_argument("--password", help="Password for basic auth")
    init_parser.add_argument("--token", help="Bearer token for token auth")
    init_parser.add_argument("--id-field", help="Front matter field holding the note identifier")
    init_parser.add_argument("--exclude", help="Comma-separated glob patterns to skip")
    init_parser.add_argument(
        "--payload-mode", choices=[m.value for m in PayloadMode], default=PayloadMode.JSON.value
    )
    init_parser.add_argument(
        "--accept-server-id",
        action="store_true",
        help="Overwrite the local identifier with one returned by the server",
    )

    for name, help_text in (
        ("sync", "Upload notes to the relay server"),
        ("generate-id", "Assign identifiers without contacting the server"),
        ("check", "Show whether notes are excluded from sync"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("paths", nargs="+", help="Note paths relative to the vault")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    vault_dir = Path(args.dir).resolve()

    if args.command == "init":
        _init(args, vault_dir)
        return
    if args.command not in {"sync", "generate-id", "check"}:
        parser.print_help()
        return

    try:
        settings = load_settings(vault_dir)
    except (ValidationError, json.JSONDecodeError) as exc:
        print(f"Error: invalid configuration: {exc}")
        sys.exit(1)

    paths = [_relative_to_vault(vault_dir, p) for p in args.paths]
    if args.command == "check":
        for path in paths:
            state = "excluded" if is_excluded(path, settings.exclude_patterns) else "included"
            print(f"  {path}: {state}")
        return

    outcomes = asyncio.run(_run_paths(settings, args.command, paths))
    failed = [o for o in outcomes if not o.ok]
    print(f"Done. {len(outcomes) - len(failed)} succeeded, {len(failed)} failed.")
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
