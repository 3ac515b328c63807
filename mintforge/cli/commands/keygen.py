"""``mintforge keygen`` — create the owner signing key."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel

from mintforge.bridge.crypto_bridge import OwnerKey
from mintforge.cli.commands.common import KEY_OPTION, console, settings_for


def keygen_cmd(
    key: Path = KEY_OPTION,
    force: bool = typer.Option(False, "--force", help="Overwrite an existing key."),
) -> None:
    """Generate an Ed25519 owner key and print its key hash and address."""
    settings = settings_for(key=key)
    if settings.key_path.exists() and not force:
        console.print(
            f"[yellow]Key already exists at {settings.key_path}[/yellow] (use --force)"
        )
        raise typer.Exit(code=1)

    owner = OwnerKey.generate()
    owner.save(settings.key_path)
    config = settings.protocol()

    console.print(
        Panel(
            "\n".join([
                "[bold green]Owner key created[/bold green]",
                "",
                f"[bold]Key file:[/bold]  {settings.key_path}",
                f"[bold]Owner:[/bold]     {owner.key_hash.hex()}",
                f"[bold]Address:[/bold]   {owner.address(config.cardano_network)}",
            ]),
            title="[bold]Mintforge[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
