"""``mintforge fund`` — create a wallet output on the local ledger."""

from __future__ import annotations

from pathlib import Path

import typer

from mintforge.cli.commands.common import (
    KEY_OPTION,
    LEDGER_OPTION,
    console,
    fail,
    load_key,
    open_service,
)


def fund_cmd(
    lovelace: int = typer.Argument(10_000_000, min=1, help="Amount of the new output."),
    ledger: Path = LEDGER_OPTION,
    key: Path = KEY_OPTION,
) -> None:
    """Fund the owner's wallet; the new output can seed a Factory."""
    service = open_service(ledger, key)
    owner = load_key(service)
    try:
        ref = service.fund(owner, lovelace)
    except (TypeError, ValueError) as exc:
        fail(exc)
    console.print(f"[green]Funded[/green] {service.wallet_address(owner)}")
    console.print(f"[bold]{ref}[/bold]")
