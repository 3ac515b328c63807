"""Main Typer application — imports and registers all CLI commands.

Entry point: ``mintforge`` (configured via pyproject.toml scripts).

Commands: keygen, fund, create-factory, create-product, get-products,
get-tag, get-factory.
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from mintforge.cli.commands.factory import create_factory_cmd, get_factory_cmd
from mintforge.cli.commands.fund import fund_cmd
from mintforge.cli.commands.keygen import keygen_cmd
from mintforge.cli.commands.product import (
    create_product_cmd,
    get_products_cmd,
    get_tag_cmd,
)
from mintforge.config import MintforgeSettings

app = typer.Typer(
    name="mintforge",
    help="Mintforge: one-shot Factories that spawn uniquely identified Products.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    """Configure logging from MINTFORGE_LOG_LEVEL (or --verbose)."""
    level = "DEBUG" if verbose else MintforgeSettings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# Register subcommands
app.command(name="keygen", help="Generate the owner signing key.")(keygen_cmd)
app.command(name="fund", help="Fund the owner's wallet on the local ledger.")(fund_cmd)
app.command(name="create-factory", help="Create a Factory from a one-shot seed.")(
    create_factory_cmd
)
app.command(name="create-product", help="Spawn a Product from a Factory.")(
    create_product_cmd
)
app.command(name="get-products", help="List a Factory's Products.")(get_products_cmd)
app.command(name="get-tag", help="Read a Product's tag.")(get_tag_cmd)
app.command(name="get-factory", help="Show a Factory's state.")(get_factory_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
