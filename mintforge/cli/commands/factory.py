"""``mintforge create-factory`` and ``mintforge get-factory``."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel
from rich.table import Table

from mintforge.cli.commands.common import (
    KEY_OPTION,
    LEDGER_OPTION,
    OWNER_OPTION,
    console,
    fail,
    load_key,
    open_service,
    parse_marker,
    resolve_owner,
)
from mintforge.core.codec import datum_to_wire
from mintforge.core.errors import MintforgeError
from mintforge.models.identity import OutputRef


def create_factory_cmd(
    seed: str = typer.Option(
        None, "--seed", "-s", help="Seed output as <tx_id>#<index>; first wallet output if omitted."
    ),
    ledger: Path = LEDGER_OPTION,
    key: Path = KEY_OPTION,
) -> None:
    """Create a Factory from a one-shot seed output."""
    service = open_service(ledger, key)
    owner = load_key(service)
    try:
        seed_ref = OutputRef.parse(seed) if seed else None
        created = service.create_factory(owner, seed_ref)
    except (MintforgeError, ValueError) as exc:
        fail(exc)

    console.print(
        Panel(
            "\n".join([
                "[bold green]Factory created[/bold green]",
                "",
                f"[bold]Transaction:[/bold]  {created.tx_id}",
                f"[bold]Seed:[/bold]         {created.seed}",
                f"[bold]Factory:[/bold]      {created.factory_script_hash}",
                f"[bold]Address:[/bold]      {created.factory_address}",
            ]),
            title="[bold]Mintforge[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
    # Print the marker identity plainly for scripting
    console.print(f"[bold]{created.marker_policy_id}[/bold]")


def get_factory_cmd(
    marker: str = typer.Argument(..., help="Factory marker identity (hex)."),
    owner: str = OWNER_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print the FactoryState datum as JSON."),
    ledger: Path = LEDGER_OPTION,
    key: Path = KEY_OPTION,
) -> None:
    """Show a Factory's state: address, phase and product list."""
    service = open_service(ledger, key)
    owner_hash = resolve_owner(service, owner)
    marker_id = parse_marker(marker)
    try:
        snapshot = service.get_factory(owner_hash, marker_id)
    except MintforgeError as exc:
        fail(exc)

    if as_json:
        console.print_json(data=datum_to_wire(snapshot.utxo.datum))
        return

    table = Table(title=f"Factory {snapshot.scripts.factory.script_hash}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Product", style="cyan")
    table.add_column("Product id (hex)")
    for position, product_id in enumerate(snapshot.product_ids, start=1):
        table.add_row(
            str(position), product_id.decode("utf-8", errors="replace"), product_id.hex()
        )

    console.print(f"[bold]Address:[/bold] {snapshot.scripts.factory.address}")
    console.print(f"[bold]State:[/bold]   {snapshot.utxo.ref}")
    console.print(f"[bold]Phase:[/bold]   {snapshot.phase.value}")
    console.print(table)
