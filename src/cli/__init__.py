"""CLI entry point for the tenant batch toolkit."""

from __future__ import annotations

import click

from src.cli.commands import add_group_members, disable_users, export_users


@click.group()
def cli() -> None:
    """Microsoft 365 / Entra ID batch administration."""


cli.add_command(export_users)
cli.add_command(add_group_members)
cli.add_command(disable_users)
