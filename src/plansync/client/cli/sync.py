"""Session and sync commands for the PlanSync CLI.

Commands:
- login: Save server credentials after checking them
- logout: Forget the saved credentials
- sync: Synchronize local plans with the cloud
"""

from __future__ import annotations

import asyncio
import sys

import click

from plansync.client.cli.config import (
    get_plans_db,
    load_config,
    require_server_config,
    save_config,
)

STRATEGY_CHOICES = ["merge", "download", "upload"]


@click.command()
@click.option("--server", required=True, help="Server URL (e.g., http://localhost:8000).")
@click.option("--token", required=True, help="Access token from the server admin.")
@click.option("--user", "user_id", required=True, help="Account identifier bound to the token.")
def login(server: str, token: str, user_id: str) -> None:
    """Log in to a PlanSync server.

    The token is checked against the server before it is saved.
    """
    from plansync.client.sync.remote import RemotePlans
    from plansync.client.transport import ProxyTransport
    from plansync.core.config import ServerConfig
    from plansync.core.types import ErrorCode

    server_config = ServerConfig(server, token)

    async def check() -> tuple[bool, str | None, int]:
        async with ProxyTransport(server_config) as transport:
            counted = await RemotePlans(transport).count(user_id)
        if counted.success:
            return True, None, counted.count
        code = counted.error.code if counted.error else ErrorCode.UNKNOWN
        if code is ErrorCode.AUTH:
            return False, "Invalid or expired token.", 0
        if code is ErrorCode.NETWORK:
            return False, f"Could not connect to server at {server}", 0
        return False, counted.error.message if counted.error else "Login check failed", 0

    ok, message, cloud_count = asyncio.run(check())
    if not ok:
        click.echo(f"Error: {message}", err=True)
        sys.exit(1)

    config = load_config()
    config["server_url"] = server_config.server_url
    config["auth_token"] = token
    config["user_id"] = user_id
    save_config(config)

    click.echo("Logged in successfully!")
    click.echo(f"Server: {server_config.server_url}")
    click.echo(f"Plans in the cloud: {cloud_count}")


@click.command()
def logout() -> None:
    """Forget the saved server credentials. Local plans are kept."""
    config = load_config()
    for key in ("auth_token", "user_id"):
        config.pop(key, None)
    save_config(config)
    click.echo("Logged out.")


@click.command()
@click.option(
    "--strategy",
    "-s",
    type=click.Choice(STRATEGY_CHOICES),
    default=None,
    help="How to reconcile local plans with the cloud (asked if needed).",
)
def sync(strategy: str | None) -> None:
    """Synchronize local plans with the cloud.

    On a first sync with plans on both sides, you choose a strategy:
    merge (newest version of each plan wins), download (same as merge)
    or upload (overwrite the cloud with local plans).
    """
    from plansync.client.app import PlanSyncClient
    from plansync.client.notifications import DesktopNotifier
    from plansync.client.sync.orchestrator import OrchestratorState, SyncStrategy

    server_config, user_id = require_server_config()

    async def run() -> int:
        client = PlanSyncClient.connect(get_plans_db(), server_config, user_id)
        DesktopNotifier().attach(client.bus)
        async with client:
            await client.start()
            orchestrator = client.orchestrator

            if orchestrator.state is OrchestratorState.AWAITING_CHOICE:
                local_count, cloud_count = orchestrator.pending_choice or (0, 0)
                chosen = strategy or click.prompt(
                    f"{local_count} local plan(s), {cloud_count} in the cloud. Strategy",
                    type=click.Choice(STRATEGY_CHOICES),
                    default="merge",
                )
                result = await orchestrator.choose_strategy(SyncStrategy(chosen))
            elif orchestrator.migration_proposed:
                if click.confirm("Save your local plans to your account?", default=True):
                    result = await orchestrator.accept_migration()
                else:
                    orchestrator.decline_migration()
                    click.echo("Local plans kept on this device only.")
                    return 0
            elif orchestrator.last_result is None:
                result = await orchestrator.sync_now(SyncStrategy(strategy or "merge"))
            else:
                result = orchestrator.last_result

            if result is None:
                click.echo("Nothing to synchronize.")
                return 0

            click.echo(
                f"Synced: {result.synced_count}, conflicts: {result.conflict_count}, "
                f"downloaded: {result.downloaded_count}, failed: {result.failed_count}"
            )
            if not result.success:
                click.echo(f"Error: {result.error}", err=True)
                return 1
            return 0

    sys.exit(asyncio.run(run()))
