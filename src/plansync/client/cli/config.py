"""Configuration utilities for the PlanSync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from plansync.core.config import ServerConfig


def get_config_dir() -> Path:
    """Get the configuration directory for PlanSync.

    Returns:
        Path to ~/.plansync.
    """
    return Path.home() / ".plansync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def get_plans_db() -> Path:
    """Get the path to the local plans database."""
    return get_config_dir() / "plans.db"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def require_server_config() -> tuple[ServerConfig, str]:
    """Return the saved server config and user id, or exit if not logged in."""
    config = load_config()
    if not (config.get("server_url") and config.get("auth_token") and config.get("user_id")):
        click.echo("Error: Not logged in. Run 'plansync login' first.", err=True)
        sys.exit(1)
    return ServerConfig(config["server_url"], config["auth_token"]), config["user_id"]
