"""CLI entry point for txbatch."""

from __future__ import annotations

import click

from txbatch.cli.commands import generate_wallets, interact, serve, transfer


@click.group()
def cli() -> None:
    """Batch EVM transaction submitter."""


cli.add_command(transfer)
cli.add_command(interact)
cli.add_command(serve)
cli.add_command(generate_wallets)
