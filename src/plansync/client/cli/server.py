"""Server administration commands for the PlanSync CLI.

Commands:
- server run: Start the query proxy
- server create-token: Issue an access token for a user
- server revoke-token: Revoke an access token
- server backup: Export every stored plan to a JSON file
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from plansync.server.database import Database

db_path_option = click.option(
    "--db-path",
    type=click.Path(),
    default=None,
    help="Path to database file (default: PLANSYNC_DB_PATH or ./plansync.db).",
)


def _resolve_db_path(db_path: str | None) -> Path:
    return Path(db_path or os.environ.get("PLANSYNC_DB_PATH", "plansync.db"))


def _open_existing_db(db_path: str | None) -> Database:
    from plansync.server.database import Database

    db_file = _resolve_db_path(db_path)
    if not db_file.exists():
        click.echo(f"Error: Database not found: {db_file}", err=True)
        click.echo("Make sure the server has been run at least once.", err=True)
        sys.exit(1)
    return Database(db_file)


@click.group()
def server() -> None:
    """Server management commands.

    These commands are for administrators of a PlanSync server.
    """


@server.command("run")
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address.")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port.")
@db_path_option
def run_cmd(host: str, port: int, db_path: str | None) -> None:
    """Start the query proxy with uvicorn."""
    import uvicorn

    if db_path:
        os.environ["PLANSYNC_DB_PATH"] = db_path

    uvicorn.run("plansync.server.app:app_factory", factory=True, host=host, port=port)


@server.command("create-token")
@click.argument("user_id")
@click.option("--expires-days", type=int, default=None, help="Token lifetime in days.")
@db_path_option
def create_token_cmd(user_id: str, expires_days: int | None, db_path: str | None) -> None:
    """Create an access token for USER_ID.

    The token is shown once; only its hash is stored.
    """
    from datetime import timedelta

    from plansync.server.database import Database

    db = Database(_resolve_db_path(db_path))
    try:
        expires_in = timedelta(days=expires_days) if expires_days else None
        raw, token = db.create_token(user_id, expires_in=expires_in)
    finally:
        db.close()

    click.echo(f"Token for {user_id}: {raw}")
    if token.expires_at is not None:
        click.echo(f"Expires: {token.expires_at:%Y-%m-%d %H:%M} UTC")


@server.command("revoke-token")
@click.argument("token")
@db_path_option
def revoke_token_cmd(token: str, db_path: str | None) -> None:
    """Revoke TOKEN."""
    db = _open_existing_db(db_path)
    try:
        revoked = db.revoke_token(token)
    finally:
        db.close()

    if not revoked:
        click.echo("Error: Token not found.", err=True)
        sys.exit(1)
    click.echo("Token revoked.")


@server.command("backup")
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False),
    default="backups",
    show_default=True,
    help="Directory receiving the backup file.",
)
@db_path_option
def backup_cmd(output_dir: str, db_path: str | None) -> None:
    """Export every stored plan to a timestamped JSON file."""
    from plansync.server.backup import backup_plans

    db = _open_existing_db(db_path)
    try:
        report = backup_plans(db, Path(output_dir))
    finally:
        db.close()

    click.echo(f"Backed up {report.count} plans to {report.path}")
    for user_id, count in sorted(report.per_user.items()):
        click.echo(f"  {user_id}: {count}")
