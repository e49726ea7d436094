"""Plan commands for the PlanSync CLI.

Commands:
- plans list: Show local plans
- plans create: Create a plan and save it to the cloud
- plans rename: Rename a plan
- plans delete: Delete a plan locally and in the cloud
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from typing import TypeVar

import click

from plansync.client.cli.config import get_plans_db, load_config

T = TypeVar("T")


def _run_with_client(action: Callable[..., Awaitable[T]], sign_in: bool = True) -> T:
    """Run ``action(client)`` with a started client for the saved account.

    Without saved credentials the client works offline on local plans.
    """
    from plansync.client.app import PlanSyncClient
    from plansync.client.transport import ProxyTransport
    from plansync.core.config import ServerConfig

    config = load_config()
    user_id = config.get("user_id")
    server_url = config.get("server_url") or "http://localhost:8000"
    transport = ProxyTransport(ServerConfig(server_url, config.get("auth_token", "")))

    async def run() -> T:
        client = PlanSyncClient(get_plans_db(), transport, user_id)
        async with client:
            await client.start(sign_in=sign_in)
            return await action(client)

    return asyncio.run(run())


@click.group()
def plans() -> None:
    """Manage budget plans."""


@plans.command("list")
def list_cmd() -> None:
    """List local plans."""

    async def action(client) -> None:
        items = client.store.plans
        if not items:
            click.echo("No plans.")
            return
        for plan in items:
            flag = "" if plan.is_syncable else " (demo, not synced)"
            click.echo(
                f"{plan.id}  {plan.name}{flag}  updated {plan.updated_at:%Y-%m-%d %H:%M}"
            )

    _run_with_client(action, sign_in=False)


@plans.command("create")
@click.argument("name")
@click.option("--demo", is_flag=True, help="Create a demo plan that is never synced.")
def create_cmd(name: str, demo: bool) -> None:
    """Create a plan named NAME."""

    async def action(client) -> bool:
        if demo:
            plan = client.plans.create_demo_plan(name)
            click.echo(f"Created demo plan {plan.id}")
            return True
        plan, result = await client.plans.create_plan(name)
        click.echo(f"Created plan {plan.id}")
        if result is not None and not result.success:
            click.echo(
                "Warning: the plan could not be saved to the cloud and is kept "
                "on this device only.",
                err=True,
            )
            return False
        return True

    try:
        ok = _run_with_client(action)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if not ok:
        sys.exit(1)


@plans.command("rename")
@click.argument("plan_id")
@click.argument("name")
def rename_cmd(plan_id: str, name: str) -> None:
    """Rename plan PLAN_ID to NAME."""

    async def action(client) -> None:
        plan = client.plans.rename_plan(plan_id, name)
        click.echo(f"Renamed plan {plan.id} to {plan.name}")

    try:
        _run_with_client(action)
    except KeyError:
        click.echo(f"Error: Plan not found: {plan_id}", err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@plans.command("delete")
@click.argument("plan_id")
def delete_cmd(plan_id: str) -> None:
    """Delete plan PLAN_ID."""

    async def action(client) -> bool:
        result = await client.plans.delete_plan(plan_id)
        click.echo(f"Deleted plan {plan_id}")
        if result is not None and not result.success:
            click.echo(f"Warning: remote deletion failed: {result.error}", err=True)
            return False
        return True

    try:
        ok = _run_with_client(action)
    except KeyError:
        click.echo(f"Error: Plan not found: {plan_id}", err=True)
        sys.exit(1)
    if not ok:
        sys.exit(1)
