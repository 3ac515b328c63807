"""Shared option handling and error reporting for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from mintforge.bridge.crypto_bridge import OwnerKey
from mintforge.config import MintforgeSettings
from mintforge.core.errors import MintforgeError
from mintforge.core.service import FactoryService
from mintforge.models.identity import normalize_hex

console = Console()

LEDGER_OPTION = typer.Option(None, "--ledger", "-l", help="Path to the ledger SQLite database.")
KEY_OPTION = typer.Option(None, "--key", "-k", help="Path to the owner signing key.")
OWNER_OPTION = typer.Option(
    None, "--owner", help="Owner key hash (hex); defaults to the loaded key's."
)


def settings_for(ledger: Path | None = None, key: Path | None = None) -> MintforgeSettings:
    overrides: dict[str, Path] = {}
    if ledger is not None:
        overrides["ledger_path"] = ledger
    if key is not None:
        overrides["key_path"] = key
    try:
        return MintforgeSettings(**overrides)
    except ValueError as exc:
        fail(exc)


def open_service(ledger: Path | None, key: Path | None) -> FactoryService:
    try:
        return FactoryService(settings_for(ledger, key))
    except (MintforgeError, ValueError, OSError) as exc:
        fail(exc)


def load_key(service: FactoryService) -> OwnerKey:
    try:
        return service.load_key()
    except (FileNotFoundError, ValueError) as exc:
        fail(exc)


def resolve_owner(service: FactoryService, owner: str | None) -> bytes:
    """Owner key hash from ``--owner`` or, failing that, the owner key file."""
    if owner is None:
        return load_key(service).key_hash
    try:
        return bytes.fromhex(normalize_hex(owner, size=28, label="owner"))
    except ValueError as exc:
        fail(exc)


def parse_marker(marker: str) -> bytes:
    try:
        return bytes.fromhex(normalize_hex(marker, size=28, label="marker identity"))
    except ValueError as exc:
        fail(exc)


def fail(exc: BaseException) -> NoReturn:
    console.print(f"[red]{type(exc).__name__}:[/red] {escape(str(exc))}")
    raise typer.Exit(code=1)
