"""``mintforge create-product``, ``get-products`` and ``get-tag``."""

from __future__ import annotations

from pathlib import Path

import typer
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
from mintforge.core.errors import MintforgeError


def create_product_cmd(
    marker: str = typer.Argument(..., help="Factory marker identity (hex)."),
    product_id: str = typer.Argument(..., help="Product id (text, 1..32 bytes)."),
    tag: str = typer.Argument(..., help="Product tag (text)."),
    ledger: Path = LEDGER_OPTION,
    key: Path = KEY_OPTION,
) -> None:
    """Spawn a Product from a Factory."""
    service = open_service(ledger, key)
    owner = load_key(service)
    marker_id = parse_marker(marker)
    try:
        created = service.create_product(
            owner, marker_id, product_id.encode("utf-8"), tag.encode("utf-8")
        )
    except MintforgeError as exc:
        fail(exc)

    console.print(f"[green]Product created[/green] in transaction {created.tx_id}")
    console.print(f"[bold]Identity:[/bold] {created.product_identity}")
    console.print(f"[bold]Address:[/bold]  {created.product_address}")
    console.print(f"[bold]Products:[/bold] {len(created.products)}")


def get_products_cmd(
    marker: str = typer.Argument(..., help="Factory marker identity (hex)."),
    owner: str = OWNER_OPTION,
    ledger: Path = LEDGER_OPTION,
    key: Path = KEY_OPTION,
) -> None:
    """List the Products of a Factory."""
    service = open_service(ledger, key)
    owner_hash = resolve_owner(service, owner)
    marker_id = parse_marker(marker)
    try:
        listings = service.get_products(owner_hash, marker_id)
    except MintforgeError as exc:
        fail(exc)

    if not listings:
        console.print("[dim]No products.[/dim]")
        return

    table = Table(title=f"Products ({service.config.discovery.value})")
    table.add_column("Product", style="cyan")
    table.add_column("Identity")
    table.add_column("Fingerprint", style="green")
    for listing in listings:
        table.add_row(listing.label, listing.product_identity, listing.fingerprint)
    console.print(table)


def get_tag_cmd(
    marker: str = typer.Argument(..., help="Factory marker identity (hex)."),
    product_id: str = typer.Argument(..., help="Product id (text)."),
    owner: str = OWNER_OPTION,
    ledger: Path = LEDGER_OPTION,
    key: Path = KEY_OPTION,
) -> None:
    """Print a Product's tag."""
    service = open_service(ledger, key)
    owner_hash = resolve_owner(service, owner)
    marker_id = parse_marker(marker)
    try:
        tag = service.get_tag(owner_hash, marker_id, product_id.encode("utf-8"))
    except MintforgeError as exc:
        fail(exc)
    console.print(tag.decode("utf-8", errors="replace"))
