"""Command-line interface for PlanSync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- login: Save server credentials for this device
- logout: Forget the saved credentials
- sync: Synchronize local plans with the cloud
- plans: List, create, rename and delete plans
- server: Server administration commands
"""

from __future__ import annotations

import click

from plansync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_plans_db,
    load_config,
    save_config,
)
from plansync.client.cli.plans import plans
from plansync.client.cli.server import server
from plansync.client.cli.sync import login, logout, sync


@click.group()
@click.version_option(package_name="plansync")
@click.option("--verbose", "-v", is_flag=True, help="Show engine logs.")
def cli(verbose: bool) -> None:
    """PlanSync - synchronize monthly budget plans across devices."""
    import logging

    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Session commands
cli.add_command(login)
cli.add_command(logout)
cli.add_command(sync)

# Plan commands
cli.add_command(plans)

# Server admin commands
cli.add_command(server)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_config_dir",
    "get_config_file",
    "get_plans_db",
    "load_config",
    "save_config",
]
